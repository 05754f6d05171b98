"""gitdeck: resilient git and GitHub housekeeping from the terminal."""

__version__ = "0.1.0"
