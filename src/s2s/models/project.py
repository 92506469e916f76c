"""Project state model."""

from typing import Optional, Tuple
from enum import Enum
from pydantic import BaseModel, Field

from .options import Archetype, GenerationConfig
from .scene import MovieScene


class Phase(str, Enum):
    """Production phase enum."""
    KEY_SELECTION = "KEY_SELECTION"
    UPLOAD = "UPLOAD"
    CONFIGURE = "CONFIGURE"
    ANALYZING = "ANALYZING"
    STORYBOARD = "STORYBOARD"
    GENERATING = "GENERATING"
    RESULT = "RESULT"


class ProjectState(BaseModel):
    """Immutable snapshot of everything the front end renders."""

    phase: Phase = Field(default=Phase.KEY_SELECTION, description="Current phase")
    error: Optional[str] = Field(None, description="Message of the last failure")
    progress: str = Field(default="", description="Latest status message, empty when idle")
    config: GenerationConfig = Field(default_factory=GenerationConfig, description="Creative parameters")
    document: Optional[bytes] = Field(None, description="Uploaded PDF script")
    document_name: Optional[str] = Field(None, description="Uploaded file name")
    scene: Optional[MovieScene] = Field(None, description="Current scene")
    video_url: Optional[str] = Field(None, description="Playable render reference")
    video_loaded: bool = Field(default=False, description="Render fetched and ready to play")
    vacated_archetype: Optional[Tuple[Archetype, int]] = Field(
        None, description="Last deselected archetype and the slot it left"
    )
    epoch: int = Field(default=0, description="Bumped whenever in-flight work becomes stale")

    class Config:
        """Pydantic config."""
        frozen = True
