from dataclasses import replace

from speech_webgrid.metrics import DistanceWeightedMetric, PerMoveMetric, WallClockTiming
from speech_webgrid.models import Direction, GamePhase, Position
from speech_webgrid.session import GameSession


class ScriptedRandom:
    """Returns scripted values, then keeps drawing far-corner goals."""

    def __init__(self, values: list[int]) -> None:
        self.values = list(values)

    def randrange(self, stop: int) -> int:
        if self.values:
            return self.values.pop(0)
        return stop - 1


def _session(goal: tuple[int, int], **kwargs) -> GameSession:
    # The first pair seeds the idle state, the second is the goal for start().
    session = GameSession(rng=ScriptedRandom([9, 9, *goal]), **kwargs)
    session.start()
    return session


def test_new_session_is_not_started() -> None:
    session = GameSession(rng=ScriptedRandom([4, 4]))

    assert session.state.phase == GamePhase.NOT_STARTED
    assert session.state.goal_position == Position(4, 4)


def test_start_resets_and_runs() -> None:
    session = _session((3, 4))
    state = session.state

    assert state.phase == GamePhase.RUNNING
    assert state.user_position == Position(0, 0)
    assert state.starting_position == Position(0, 0)
    assert state.goal_position == Position(3, 4)
    assert state.score == 0
    assert state.total_bits == 0
    assert state.time_remaining_seconds == 40
    assert state.started_at is not None
    assert state.last_error is None


def test_moves_are_ignored_unless_running() -> None:
    session = GameSession(rng=ScriptedRandom([4, 4]))
    before = replace(session.state)

    session.apply_direction(Direction.DOWN)
    session.handle_key("ArrowRight")
    session.handle_transcript("left")
    session.tick()

    assert session.state == before


def test_session_length_ticks_end_the_game_despite_moves() -> None:
    session = _session((9, 9), session_length_seconds=40)

    for second in range(40):
        if second % 3 == 0:
            session.apply_direction(Direction.RIGHT)
        session.tick()

    assert session.state.phase == GamePhase.OVER
    assert session.state.time_remaining_seconds == 0

    session.tick()
    assert session.state.time_remaining_seconds == 0


def test_no_mutations_once_over() -> None:
    session = _session((9, 9), session_length_seconds=2)
    session.apply_direction(Direction.DOWN)
    session.tick()
    session.tick()
    over = replace(session.state)

    session.apply_direction(Direction.DOWN)
    session.handle_key("ArrowDown")
    session.handle_transcript("down")

    assert session.state == over


def test_two_downs_reach_goal_and_start_next_leg() -> None:
    rng = ScriptedRandom([5, 5, 2, 0, 7, 7])
    session = GameSession(rng=rng)
    session.start()

    session.apply_direction(Direction.DOWN)
    assert session.state.score == 0
    session.apply_direction(Direction.DOWN)

    state = session.state
    assert state.user_position == Position(2, 0)
    assert state.score == 1
    assert state.goal_position == Position(7, 7)
    assert state.starting_position == Position(2, 0)


def test_per_move_policy_counts_every_accepted_move() -> None:
    session = _session((1, 0), metric=PerMoveMetric())

    session.apply_direction(Direction.UP)  # blocked by the wall, still charged
    session.apply_direction(Direction.RIGHT)
    session.apply_direction(Direction.LEFT)
    assert session.state.total_bits == 6

    session.apply_direction(Direction.DOWN)

    assert session.state.score == 1
    assert session.state.total_bits == 8


def test_per_move_policy_can_ignore_blocked_moves() -> None:
    session = _session((1, 0), metric=PerMoveMetric(charge_blocked_moves=False))

    session.apply_direction(Direction.UP)
    session.apply_direction(Direction.LEFT)

    assert session.state.total_bits == 0


def test_distance_weighted_policy_counts_leg_length_on_arrival() -> None:
    session = _session((1, 0), metric=DistanceWeightedMetric())

    session.apply_direction(Direction.RIGHT)
    session.apply_direction(Direction.LEFT)
    assert session.state.total_bits == 0

    session.apply_direction(Direction.DOWN)

    assert session.state.score == 1
    assert session.state.total_bits == 2


def test_distance_weighted_policy_measures_from_previous_goal() -> None:
    rng = ScriptedRandom([9, 9, 0, 2, 2, 2])
    session = GameSession(rng=rng, metric=DistanceWeightedMetric())
    session.start()

    session.apply_direction(Direction.RIGHT)
    session.apply_direction(Direction.RIGHT)
    assert session.state.total_bits == 4
    assert session.state.starting_position == Position(0, 2)

    session.apply_direction(Direction.DOWN)
    session.apply_direction(Direction.DOWN)

    assert session.state.score == 2
    assert session.state.total_bits == 8


def test_unrecognized_phrase_sets_error_without_moving() -> None:
    session = _session((5, 5))
    session.apply_direction(Direction.DOWN)
    before = replace(session.state)

    session.handle_transcript("banana")

    state = session.state
    assert state.last_error == 'Unrecognized command: "banana"'
    assert state.user_position == before.user_position
    assert state.total_bits == before.total_bits
    assert state.time_remaining_seconds == before.time_remaining_seconds


def test_next_recognized_command_clears_error() -> None:
    session = _session((5, 5))
    session.handle_transcript("banana")

    session.handle_transcript("please go down now")

    assert session.state.last_error is None
    assert session.state.last_command == Direction.DOWN
    assert session.state.user_position == Position(1, 0)


def test_unbound_keys_have_no_side_effect() -> None:
    session = _session((5, 5))
    session.handle_transcript("banana")
    before = replace(session.state)

    session.handle_key("KeyQ")

    assert session.state == before


def test_partial_transcripts_are_not_acted_on() -> None:
    session = _session((5, 5))

    session.handle_transcript("down", is_final=False)
    session.handle_transcript("banana", is_final=False)

    assert session.state.user_position == Position(0, 0)
    assert session.state.last_error is None


def test_stale_results_after_game_over_are_discarded_silently() -> None:
    session = _session((5, 5), session_length_seconds=1)
    session.tick()

    session.handle_transcript("banana")
    session.handle_recognition_error("Transcription request failed: timeout")

    assert session.state.phase == GamePhase.OVER
    assert session.state.last_error is None


def test_late_unavailable_report_leaves_ended_session_untouched() -> None:
    session = _session((5, 5), session_length_seconds=1)
    session.tick()

    session.handle_recognition_error("Microphone unavailable: unplugged", unavailable=True)

    assert session.state.last_error is None
    assert session.state.voice_available is True


def test_unavailable_report_before_start_is_discarded() -> None:
    session = GameSession(rng=ScriptedRandom([4, 4]))

    session.handle_recognition_error("Speech recognition is not supported", unavailable=True)

    assert session.state.last_error is None
    assert session.state.voice_available is True


def test_transcription_failure_is_reported_like_unrecognized_command() -> None:
    session = _session((5, 5))

    session.handle_recognition_error("Transcription service returned HTTP 500")

    assert session.state.last_error == "Transcription service returned HTTP 500"
    assert session.state.phase == GamePhase.RUNNING


def test_recognition_unavailable_disables_voice_but_not_keys() -> None:
    session = _session((5, 5))

    session.handle_recognition_error("Speech recognition is not supported", unavailable=True)
    session.handle_transcript("down")
    session.handle_key("ArrowRight")

    state = session.state
    assert state.voice_available is False
    assert state.last_error is None
    assert state.user_position == Position(0, 1)


def test_rate_uses_countdown_elapsed_time() -> None:
    session = _session((9, 9))
    for _ in range(5):
        session.apply_direction(Direction.RIGHT)
    for _ in range(5):
        session.tick()

    assert session.state.total_bits == 10
    assert session.bits_per_second() == 2.0


def test_rate_at_session_start_treats_elapsed_as_one_second() -> None:
    session = _session((9, 9))
    for _ in range(5):
        session.apply_direction(Direction.DOWN)

    assert session.bits_per_second() == 10.0


def test_rate_with_wall_clock_timing() -> None:
    now = [50.0]
    session = _session((9, 9), timing=WallClockTiming(clock=lambda: now[0]))
    session.apply_direction(Direction.DOWN)
    session.apply_direction(Direction.DOWN)

    now[0] = 52.0

    assert session.bits_per_second() == 2.0


def test_restart_resets_everything_after_game_over() -> None:
    rng = ScriptedRandom([9, 9, 1, 0, 6, 6, 3, 3])
    session = GameSession(rng=rng, session_length_seconds=3)
    session.start()
    session.apply_direction(Direction.DOWN)
    session.apply_direction(Direction.RIGHT)
    session.handle_transcript("banana")
    for _ in range(3):
        session.tick()
    assert session.state.phase == GamePhase.OVER
    assert session.state.score == 1

    session.restart()

    state = session.state
    assert state.phase == GamePhase.RUNNING
    assert state.score == 0
    assert state.total_bits == 0
    assert state.user_position == Position(0, 0)
    assert state.starting_position == Position(0, 0)
    assert state.goal_position == Position(3, 3)
    assert state.time_remaining_seconds == 3
    assert state.last_error is None
    assert state.voice_available is True
