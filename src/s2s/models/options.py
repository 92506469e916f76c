"""Creative parameters chosen before analysis."""

from enum import Enum
from pathlib import Path
from typing import List
from pydantic import BaseModel, Field
import yaml


class Genre(str, Enum):
    """Target genre of the generated scene."""
    SCI_FI = "Sci-fi"
    COMEDY = "Comedy"
    DRAMA = "Drama"
    HORROR = "Horror"
    ACTION = "Action"
    ROMANCE = "Romance"


class Mood(str, Enum):
    """Atmospheric mood of the generated scene."""
    UPLIFTING = "Uplifting"
    SUSPENSEFUL = "Suspenseful"
    HEARTWARMING = "Heartwarming"
    DARK = "Dark"
    EPIC = "Epic"
    NOIR = "Noir"


class Archetype(str, Enum):
    """Character role used to steer the analysis."""
    RELUCTANT_HERO = "Reluctant Hero"
    WISE_MENTOR = "Wise Mentor"
    CUNNING_VILLAIN = "Cunning Villain"
    COMIC_RELIEF = "Comic Relief"
    FEMME_FATALE = "Femme Fatale"
    THE_OUTCAST = "The Outcast"


class CameraMovement(str, Enum):
    """Camera movement injected verbatim into the visual prompt."""
    STATIC = "Static"
    PUSH_IN = "Cinematic Push-In"
    PAN_LEFT = "Slow Pan Left"
    PAN_RIGHT = "Slow Pan Right"
    HANDHELD = "Handheld Shake"
    DRONE = "Drone Flyover"
    ZOOM_OUT = "Zoom Out"


class GenerationConfig(BaseModel):
    """Draft of the creative parameters for one production attempt."""

    genre: Genre = Field(default=Genre.SCI_FI, description="Target genre")
    mood: Mood = Field(default=Mood.EPIC, description="Target mood")
    archetypes: List[Archetype] = Field(
        default_factory=list,
        description="Selected archetypes in selection order"
    )
    camera: CameraMovement = Field(default=CameraMovement.STATIC, description="Camera movement style")
    include_subtitles: bool = Field(default=False, description="Request and render subtitles")

    class Config:
        """Pydantic config."""
        frozen = True

    @property
    def ready(self) -> bool:
        """Return True when analysis may start (at least one archetype)."""
        return len(self.archetypes) > 0

    @classmethod
    def from_yaml(cls, path: Path) -> "GenerationConfig":
        """Load a preset from a YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
