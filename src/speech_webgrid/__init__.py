"""Grid navigation game driven by key presses or transcribed voice commands."""

__version__ = "0.1.0"
