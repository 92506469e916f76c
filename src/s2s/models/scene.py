"""Scene data model."""

from typing import List, Optional
from pydantic import BaseModel, Field


class Subtitle(BaseModel):
    """A single timed line of dialogue, times in seconds."""

    start_time: float = Field(..., description="Cue start in seconds")
    end_time: float = Field(..., description="Cue end in seconds")
    text: str = Field(..., description="Dialogue text")

    class Config:
        """Pydantic config."""
        frozen = True

    @property
    def well_formed(self) -> bool:
        return 0 <= self.start_time < self.end_time

    def covers(self, t: float) -> bool:
        """Return True if this cue is well formed and shown at time t."""
        return self.well_formed and self.start_time <= t < self.end_time


class MovieScene(BaseModel):
    """Analysis output, enriched with the storyboard still and subtitle edits."""

    title: str = Field(..., description="Movie title")
    description: str = Field(..., description="Emotional core of the scene")
    visual_prompt: str = Field(..., description="Prompt for image and video synthesis")
    genre: str = Field(..., description="Genre as reported by the analysis")
    mood: str = Field(..., description="Mood as reported by the analysis")
    characters: List[str] = Field(default_factory=list, description="Featured characters")
    subtitles: Optional[List[Subtitle]] = Field(None, description="Timed dialogue, if requested")
    storyboard_image: Optional[str] = Field(None, description="Storyboard still as a data URI")

    class Config:
        """Pydantic config."""
        frozen = True
