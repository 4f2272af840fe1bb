"""ThreadFlow — social threads to short-video scripts."""

__version__ = "0.1.0"
