"""Runtime configuration for Speech Webgrid."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="SPEECH_WEBGRID_", env_file=".env", extra="ignore")

    app_name: str = "speech-webgrid"
    log_level: str = "WARNING"
    grid_size: int = Field(default=10, ge=2, description="Rows and columns of the square grid.")
    session_length_seconds: int = Field(default=40, ge=1)
    tick_interval_seconds: float = Field(default=1.0, gt=0)
    metric_policy: Literal["per_move", "distance_weighted"] = "per_move"
    timing_source: Literal["countdown", "wall_clock"] = "countdown"
    bits_per_move: int = Field(default=2, ge=0, description="Bit quantum for one direction command.")
    charge_blocked_moves: bool = Field(
        default=True,
        description="Whether a move into a wall still counts bits under the per-move policy.",
    )
    bits_per_arrival: float = Field(
        default=0,
        ge=0,
        description="Extra bits for each goal reached under the per-move policy.",
    )
    voice_enabled: bool = True
    voice_backend: Literal["local", "hosted", "streaming"] = "local"
    recognition_language: str = "en-US"
    sensitivity_threshold: float = Field(default=0.0, ge=0.0, le=1.0)
    transcription_url: str = Field(
        default="http://127.0.0.1:3000/api/transcribe",
        description="Hosted transcription endpoint accepting audio/wav POST bodies.",
    )
    transcription_api_key: str | None = None
    transcription_timeout_seconds: float = 30.0
    streaming_url: str = "wss://api.assemblyai.com/v2/realtime/ws?sample_rate=16000"


settings = Settings()
