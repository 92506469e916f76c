"""Data models for the script-to-screen studio."""

from .options import Archetype, CameraMovement, GenerationConfig, Genre, Mood
from .scene import MovieScene, Subtitle
from .project import Phase, ProjectState

__all__ = [
    "Archetype",
    "CameraMovement",
    "GenerationConfig",
    "Genre",
    "Mood",
    "MovieScene",
    "Subtitle",
    "Phase",
    "ProjectState",
]
