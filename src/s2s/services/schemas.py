"""Structured-output contracts for script analysis.

Gemini constrains its JSON reply to the schema passed as ``response_schema``.
There are two named variants; ``analysis_schema`` picks one from the
``include_subtitles`` flag so the subtitle array is either required or absent.
"""

from typing import List, Type

from pydantic import BaseModel, Field


class SubtitleCue(BaseModel):
    """A line of dialogue timed against the generated clip."""

    start_time: float = Field(description="Start of the line in seconds, between 0 and 6")
    end_time: float = Field(description="End of the line in seconds, after start_time and at most 6")
    text: str = Field(description="The spoken line")


class SceneAnalysis(BaseModel):
    """Scene extracted from the script, without dialogue."""

    title: str = Field(description="A compelling movie title")
    description: str = Field(description="Short cinematic description of the scene's emotional core")
    visual_prompt: str = Field(
        description="Highly detailed prompt for an AI video generator, opening with the camera movement"
    )
    genre: str = Field(description="Genre of the adapted scene")
    mood: str = Field(description="Mood of the adapted scene")
    characters: List[str] = Field(description="Characters and archetypes featured in the scene")


class SceneAnalysisWithSubtitles(SceneAnalysis):
    """Scene extracted from the script, with 2-4 timed subtitle lines."""

    subtitles: List[SubtitleCue] = Field(description="2-4 lines of cinematic dialogue")


def analysis_schema(include_subtitles: bool) -> Type[SceneAnalysis]:
    """Return the schema variant for the subtitle setting."""
    return SceneAnalysisWithSubtitles if include_subtitles else SceneAnalysis


def required_fields(schema: Type[BaseModel]) -> set[str]:
    """Return the top-level required field names of a schema variant."""
    return set(schema.model_json_schema().get("required", []))
