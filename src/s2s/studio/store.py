"""Session store for one production.

Every action is a pure function ``(state, ...) -> state`` over the immutable
``ProjectState`` snapshot. ``SessionStore`` holds the current snapshot, applies
actions and notifies subscribers. Actions never fail on user input.
"""

import logging
import math
from typing import Any, Callable, List, Optional, Union

from pydantic import ValidationError

from ..models import Archetype, GenerationConfig, MovieScene, Phase, ProjectState

logger = logging.getLogger(__name__)

SceneUpdate = Union[
    Optional[MovieScene],
    Callable[[Optional[MovieScene]], Optional[MovieScene]],
]

Listener = Callable[[ProjectState], None]

_TIME_FIELDS = {
    "start": "start_time",
    "start_time": "start_time",
    "startTime": "start_time",
    "end": "end_time",
    "end_time": "end_time",
    "endTime": "end_time",
}


def parse_seconds(raw: Any) -> float:
    """Parse a user-entered time in seconds; anything unusable becomes 0."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def set_config(state: ProjectState, **patch: Any) -> ProjectState:
    """Merge a patch into the configuration draft. An invalid patch is ignored."""
    merged = {**state.config.model_dump(), **patch}
    try:
        config = GenerationConfig(**merged)
    except ValidationError as e:
        logger.debug(f"Ignoring invalid config patch {patch!r}: {e}")
        return state

    update = {"config": config}
    if "archetypes" in patch:
        update["vacated_archetype"] = None
    return state.model_copy(update=update)


def toggle_archetype(state: ProjectState, value: Union[Archetype, str]) -> ProjectState:
    """Flip membership of an archetype.

    New archetypes are appended. An archetype toggled back on right after being
    removed returns to the slot it left.
    """
    try:
        archetype = Archetype(value)
    except ValueError:
        logger.debug(f"Ignoring unknown archetype {value!r}")
        return state

    selected = list(state.config.archetypes)

    if archetype in selected:
        index = selected.index(archetype)
        selected.remove(archetype)
        vacated = (archetype, index)
    else:
        if state.vacated_archetype and state.vacated_archetype[0] == archetype:
            index = min(state.vacated_archetype[1], len(selected))
            selected.insert(index, archetype)
        else:
            selected.append(archetype)
        vacated = None

    config = state.config.model_copy(update={"archetypes": selected})
    return state.model_copy(update={"config": config, "vacated_archetype": vacated})


# ---------------------------------------------------------------------------
# Scene and subtitles
# ---------------------------------------------------------------------------

def set_scene(state: ProjectState, update: SceneUpdate) -> ProjectState:
    """Replace the scene, or derive the new one from the current one."""
    scene = update(state.scene) if callable(update) else update
    return state.model_copy(update={"scene": scene})


def _replace_subtitle(state: ProjectState, index: int, **changes: Any) -> ProjectState:
    scene = state.scene
    if scene is None or not scene.subtitles or not 0 <= index < len(scene.subtitles):
        logger.debug(f"Ignoring edit of missing subtitle {index}")
        return state

    subtitles = list(scene.subtitles)
    subtitles[index] = subtitles[index].model_copy(update=changes)
    return state.model_copy(update={"scene": scene.model_copy(update={"subtitles": subtitles})})


def update_subtitle_text(state: ProjectState, index: int, text: str) -> ProjectState:
    return _replace_subtitle(state, index, text=text)


def update_subtitle_time(state: ProjectState, index: int, field: str, raw: Any) -> ProjectState:
    """Set a subtitle's start or end time from raw user input."""
    name = _TIME_FIELDS.get(field)
    if name is None:
        logger.debug(f"Ignoring edit of unknown subtitle field {field!r}")
        return state
    return _replace_subtitle(state, index, **{name: parse_seconds(raw)})


# ---------------------------------------------------------------------------
# Phase bookkeeping
# ---------------------------------------------------------------------------

def set_error(state: ProjectState, message: Optional[str]) -> ProjectState:
    return state.model_copy(update={"error": message})


def set_progress(state: ProjectState, message: str) -> ProjectState:
    return state.model_copy(update={"progress": message})


def enter_phase(state: ProjectState, phase: Phase) -> ProjectState:
    """Move to a phase without side effects other than clearing the error."""
    return state.model_copy(update={"phase": phase, "error": None, "progress": ""})


def load_document(state: ProjectState, name: str, data: bytes) -> ProjectState:
    return state.model_copy(update={
        "phase": Phase.CONFIGURE,
        "document": data,
        "document_name": name,
        "error": None,
    })


def begin(state: ProjectState, phase: Phase, message: str) -> ProjectState:
    """Start an attempt: new epoch, cleared error, initial status line."""
    update = {"phase": phase, "error": None, "progress": message, "epoch": state.epoch + 1}
    if phase is Phase.GENERATING:
        update.update(video_url=None, video_loaded=False)
    return state.model_copy(update=update)


def fail(state: ProjectState, phase: Phase, message: Optional[str]) -> ProjectState:
    return state.model_copy(update={"phase": phase, "error": message, "progress": ""})


def storyboard_ready(state: ProjectState, scene: MovieScene) -> ProjectState:
    return state.model_copy(update={"phase": Phase.STORYBOARD, "scene": scene, "progress": ""})


def video_ready(state: ProjectState, url: str) -> ProjectState:
    return state.model_copy(update={"phase": Phase.RESULT, "video_url": url, "progress": ""})


def mark_video_loaded(state: ProjectState) -> ProjectState:
    if state.video_url is None:
        return state
    return state.model_copy(update={"video_loaded": True})


def _cleared(state: ProjectState, phase: Phase, error: Optional[str]) -> ProjectState:
    return state.model_copy(update={
        "phase": phase,
        "error": error,
        "progress": "",
        "document": None,
        "document_name": None,
        "scene": None,
        "video_url": None,
        "video_loaded": False,
        "epoch": state.epoch + 1,
    })


def reset(state: ProjectState) -> ProjectState:
    """Drop all project artifacts and return to UPLOAD. The config draft survives."""
    return _cleared(state, Phase.UPLOAD, None)


def expire_session(state: ProjectState, message: str) -> ProjectState:
    """Abandon project artifacts and return to KEY_SELECTION."""
    return _cleared(state, Phase.KEY_SELECTION, message)


class SessionStore:
    """Holds the current snapshot and applies actions to it."""

    def __init__(self, state: Optional[ProjectState] = None) -> None:
        self._state = state or ProjectState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ProjectState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with every new snapshot. Returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply(self, action: Callable[..., ProjectState], *args: Any, **kwargs: Any) -> ProjectState:
        new_state = action(self._state, *args, **kwargs)
        if new_state is not self._state:
            if new_state.phase is not self._state.phase:
                logger.info(f"Phase {self._state.phase.value} -> {new_state.phase.value}")
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    def set_config(self, **patch: Any) -> ProjectState:
        return self.apply(set_config, **patch)

    def toggle_archetype(self, value: Union[Archetype, str]) -> ProjectState:
        return self.apply(toggle_archetype, value)

    def set_scene(self, update: SceneUpdate) -> ProjectState:
        return self.apply(set_scene, update)

    def update_subtitle_text(self, index: int, text: str) -> ProjectState:
        return self.apply(update_subtitle_text, index, text)

    def update_subtitle_time(self, index: int, field: str, raw: Any) -> ProjectState:
        return self.apply(update_subtitle_time, index, field, raw)

    def reset(self) -> ProjectState:
        return self.apply(reset)
