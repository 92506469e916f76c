"""Tests for the session store actions."""
from __future__ import annotations

import math

import pytest

from s2s.models import Archetype, Genre, Phase, ProjectState
from s2s.studio import store
from s2s.studio.store import SessionStore, parse_seconds


def _with_archetypes(*archetypes: Archetype) -> ProjectState:
    return store.set_config(ProjectState(), archetypes=list(archetypes))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestToggleArchetype:

    def test_adds_in_insertion_order(self):
        state = store.toggle_archetype(ProjectState(), Archetype.WISE_MENTOR)
        state = store.toggle_archetype(state, Archetype.COMIC_RELIEF)
        assert state.config.archetypes == [Archetype.WISE_MENTOR, Archetype.COMIC_RELIEF]

    def test_removes_selected(self):
        state = _with_archetypes(Archetype.WISE_MENTOR, Archetype.COMIC_RELIEF)
        state = store.toggle_archetype(state, Archetype.WISE_MENTOR)
        assert state.config.archetypes == [Archetype.COMIC_RELIEF]

    @pytest.mark.parametrize("archetype", list(Archetype))
    def test_twice_restores_value_and_order(self, archetype):
        original = _with_archetypes(Archetype.CUNNING_VILLAIN, Archetype.RELUCTANT_HERO, Archetype.THE_OUTCAST)
        state = store.toggle_archetype(original, archetype)
        state = store.toggle_archetype(state, archetype)
        assert state.config.archetypes == original.config.archetypes

    def test_accepts_display_value(self):
        state = store.toggle_archetype(ProjectState(), "Femme Fatale")
        assert state.config.archetypes == [Archetype.FEMME_FATALE]

    def test_does_not_mutate_previous_snapshot(self):
        before = _with_archetypes(Archetype.WISE_MENTOR)
        store.toggle_archetype(before, Archetype.COMIC_RELIEF)
        assert before.config.archetypes == [Archetype.WISE_MENTOR]

    def test_unknown_value_leaves_state_unchanged(self):
        state = _with_archetypes(Archetype.WISE_MENTOR)
        assert store.toggle_archetype(state, "Space Pirate") is state

    def test_config_patch_forgets_vacated_slot(self):
        state = _with_archetypes(Archetype.RELUCTANT_HERO, Archetype.WISE_MENTOR)
        state = store.toggle_archetype(state, Archetype.RELUCTANT_HERO)
        state = store.set_config(state, archetypes=[Archetype.COMIC_RELIEF])
        state = store.toggle_archetype(state, Archetype.RELUCTANT_HERO)
        assert state.config.archetypes == [Archetype.COMIC_RELIEF, Archetype.RELUCTANT_HERO]


def test_set_config_patches_fields():
    state = store.set_config(ProjectState(), genre=Genre.ACTION, include_subtitles=True)
    assert state.config.genre is Genre.ACTION
    assert state.config.include_subtitles is True
    assert state.config.mood.value == "Epic"


@pytest.mark.parametrize("patch", [
    {"genre": "Western"},
    {"mood": None},
    {"archetypes": ["Space Pirate"]},
    {"include_subtitles": "sometimes"},
])
def test_invalid_config_patch_is_ignored(patch):
    state = _with_archetypes(Archetype.WISE_MENTOR)
    assert store.set_config(state, **patch) is state


# ---------------------------------------------------------------------------
# Scene and subtitles
# ---------------------------------------------------------------------------

class TestSubtitleEdits:

    def test_update_text(self, scene_with_subtitles):
        state = ProjectState(scene=scene_with_subtitles)
        state = store.update_subtitle_text(state, 1, "Forward, then.")
        assert state.scene.subtitles[1].text == "Forward, then."
        assert state.scene.subtitles[0].text == "We're not going back."

    def test_update_time_parses_number(self, scene_with_subtitles):
        state = ProjectState(scene=scene_with_subtitles)
        state = store.update_subtitle_time(state, 0, "start_time", "1.25")
        state = store.update_subtitle_time(state, 0, "endTime", 3)
        assert state.scene.subtitles[0].start_time == 1.25
        assert state.scene.subtitles[0].end_time == 3.0

    @pytest.mark.parametrize("raw", ["abc", "", None, "nan", "inf", "1.2.3"])
    def test_update_time_coerces_invalid_to_zero(self, scene_with_subtitles, raw):
        state = ProjectState(scene=scene_with_subtitles)
        state = store.update_subtitle_time(state, 1, "end_time", raw)
        value = state.scene.subtitles[1].end_time
        assert value == 0
        assert not math.isnan(value)

    def test_out_of_range_index_is_ignored(self, scene_with_subtitles):
        state = ProjectState(scene=scene_with_subtitles)
        assert store.update_subtitle_text(state, 5, "x") is state
        assert store.update_subtitle_time(state, -1, "start_time", "1") is state

    def test_unknown_field_is_ignored(self, scene_with_subtitles):
        state = ProjectState(scene=scene_with_subtitles)
        assert store.update_subtitle_time(state, 0, "duration", "1") is state

    def test_edit_without_scene_is_ignored(self):
        state = ProjectState()
        assert store.update_subtitle_text(state, 0, "x") is state


def test_parse_seconds():
    assert parse_seconds("2.5") == 2.5
    assert parse_seconds(4) == 4.0
    assert parse_seconds("abc") == 0.0


def test_set_scene_with_updater(scene):
    state = store.set_scene(ProjectState(), scene)
    state = store.set_scene(state, lambda s: s.model_copy(update={"title": "Retitled"}))
    assert state.scene.title == "Retitled"
    assert store.set_scene(state, None).scene is None


# ---------------------------------------------------------------------------
# Reset and bookkeeping
# ---------------------------------------------------------------------------

def test_reset_clears_project_but_keeps_config(scene):
    state = ProjectState(
        phase=Phase.RESULT,
        error="boom",
        document=b"%PDF-1.7",
        document_name="script.pdf",
        scene=scene,
        video_url="https://videos/clip",
        video_loaded=True,
        epoch=4,
    )
    state = store.set_config(state, archetypes=[Archetype.WISE_MENTOR])

    cleared = store.reset(state)

    assert cleared.phase is Phase.UPLOAD
    assert cleared.document is None
    assert cleared.scene is None
    assert cleared.video_url is None
    assert cleared.video_loaded is False
    assert cleared.error is None
    assert cleared.epoch == 5
    assert cleared.config.archetypes == [Archetype.WISE_MENTOR]


def test_begin_generating_clears_previous_video():
    state = ProjectState(phase=Phase.RESULT, video_url="https://videos/old", video_loaded=True, epoch=2)
    state = store.begin(state, Phase.GENERATING, "Initializing cinematic engine...")
    assert state.video_url is None
    assert state.video_loaded is False
    assert state.epoch == 3
    assert state.progress == "Initializing cinematic engine..."


def test_mark_video_loaded_requires_video():
    assert store.mark_video_loaded(ProjectState()).video_loaded is False
    assert store.mark_video_loaded(ProjectState(video_url="u")).video_loaded is True


class TestSessionStore:

    def test_notifies_listeners(self):
        session = SessionStore()
        seen = []
        session.subscribe(lambda state: seen.append(state.config.genre))

        session.set_config(genre=Genre.COMEDY)

        assert seen == [Genre.COMEDY]
        assert session.state.config.genre is Genre.COMEDY

    def test_no_notification_when_nothing_changes(self, scene_with_subtitles):
        session = SessionStore(ProjectState(scene=scene_with_subtitles))
        seen = []
        session.subscribe(seen.append)

        session.update_subtitle_text(9, "missing")

        assert seen == []

    def test_unsubscribe_twice_is_harmless(self):
        session = SessionStore()
        seen = []
        unsubscribe = session.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        session.toggle_archetype(Archetype.WISE_MENTOR)
        assert seen == []
