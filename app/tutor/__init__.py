"""AI Teacher: English conversation practice with an AI tutor."""

__version__ = "0.1.0"
