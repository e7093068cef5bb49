"""Terminal rendering of the grid and the session HUD."""

from __future__ import annotations

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from speech_webgrid.models import GamePhase, Position
from speech_webgrid.session import GameSession


def render_board(session: GameSession) -> Table:
    state = session.state
    board = Table.grid(padding=(0, 0))
    for _ in range(session.grid_size):
        board.add_column(justify="center")

    for row in range(session.grid_size):
        cells = []
        for col in range(session.grid_size):
            cell = Position(row=row, col=col)
            if cell == state.user_position:
                cells.append(Text(" U ", style="bold white on blue"))
            elif cell == state.goal_position:
                cells.append(Text(" G ", style="bold white on green"))
            else:
                cells.append(Text(" · ", style="dim"))
        board.add_row(*cells)
    return board


def render_status(session: GameSession) -> Table:
    state = session.state
    status = Table.grid(padding=(0, 2))
    status.add_column(style="bold")
    status.add_column()
    status.add_row("Time Remaining", f"{state.time_remaining_seconds}s")
    status.add_row("Score", str(state.score))
    status.add_row("Total Bits", f"{state.total_bits:g}")
    status.add_row("BPS", f"{session.bits_per_second():.2f}")
    status.add_row("Last Command", state.last_command.value if state.last_command else "-")
    if not state.voice_available:
        status.add_row("Voice", Text("unavailable", style="yellow"))
    if state.last_error:
        status.add_row("Error", Text(state.last_error, style="red"))
    return status


def render_summary(session: GameSession) -> Panel:
    state = session.state
    return Panel(
        f"Final Score: {state.score}\nTotal Bits: {state.total_bits:g}\nFinal BPS: {session.bits_per_second():.2f}",
        title="Game Over!",
        border_style="red",
        expand=False,
    )


def render(session: GameSession) -> Panel | Group:
    if session.state.phase == GamePhase.OVER:
        return render_summary(session)
    return Group(
        Panel(render_board(session), title="Speech Webgrid", expand=False),
        render_status(session),
    )
