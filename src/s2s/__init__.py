"""Script2Screen: turn a screenplay into a short AI-generated scene."""

__version__ = "0.1.0"
