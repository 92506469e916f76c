"""Tests for analysis schema variants and prompt assembly."""
from __future__ import annotations

from s2s.models import Archetype, CameraMovement, GenerationConfig, Genre, Mood
from s2s.services.prompts import (
    PROGRESS_MESSAGES,
    STORYBOARD_QUALIFIERS,
    build_analysis_prompt,
    progress_message,
)
from s2s.services.schemas import (
    SceneAnalysis,
    SceneAnalysisWithSubtitles,
    analysis_schema,
    required_fields,
)

BASE_FIELDS = {"title", "description", "visual_prompt", "genre", "mood", "characters"}


def test_subtitles_required_when_requested():
    options = GenerationConfig(archetypes=[Archetype.RELUCTANT_HERO], include_subtitles=True)
    schema = analysis_schema(options.include_subtitles)

    assert schema is SceneAnalysisWithSubtitles
    assert required_fields(schema) == BASE_FIELDS | {"subtitles"}


def test_subtitles_absent_when_not_requested():
    options = GenerationConfig(archetypes=[Archetype.RELUCTANT_HERO], include_subtitles=False)
    schema = analysis_schema(options.include_subtitles)

    assert schema is SceneAnalysis
    assert required_fields(schema) == BASE_FIELDS
    assert "subtitles" not in schema.model_json_schema()["properties"]


def test_subtitle_cue_fields_are_required():
    defs = SceneAnalysisWithSubtitles.model_json_schema()["$defs"]
    assert set(defs["SubtitleCue"]["required"]) == {"start_time", "end_time", "text"}


class TestAnalysisPrompt:

    def test_embeds_creative_parameters(self):
        options = GenerationConfig(
            genre=Genre.HORROR,
            mood=Mood.NOIR,
            archetypes=[Archetype.CUNNING_VILLAIN, Archetype.FEMME_FATALE],
            camera=CameraMovement.HANDHELD,
        )
        prompt = build_analysis_prompt(options)

        assert "- Target Genre: Horror" in prompt
        assert "- Target Mood: Noir" in prompt
        assert "- Camera Movement Style: Handheld Shake" in prompt
        assert "Cunning Villain, Femme Fatale" in prompt
        assert 'describing the camera movement: "Handheld Shake"' in prompt

    def test_dialogue_instruction_follows_flag(self):
        with_subs = GenerationConfig(archetypes=[Archetype.WISE_MENTOR], include_subtitles=True)
        without = GenerationConfig(archetypes=[Archetype.WISE_MENTOR])

        assert "2-4 lines of cinematic dialogue" in build_analysis_prompt(with_subs)
        assert "dialogue" not in build_analysis_prompt(without)


def test_progress_messages_wrap():
    count = len(PROGRESS_MESSAGES)
    assert progress_message(0) == PROGRESS_MESSAGES[0]
    assert progress_message(count) == PROGRESS_MESSAGES[0]
    assert progress_message(count + 2) == PROGRESS_MESSAGES[2]


def test_storyboard_qualifiers_fix_aspect_ratio():
    assert "--aspect-ratio 16:9" in STORYBOARD_QUALIFIERS
