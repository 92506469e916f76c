"""Shared fakes for the generation backend and credential host."""
from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from s2s.config import Config
from s2s.errors import DialogError
from s2s.models import MovieScene, Subtitle


# ---------------------------------------------------------------------------
# google-genai client fakes
# ---------------------------------------------------------------------------

def text_response(payload) -> SimpleNamespace:
    text = payload if isinstance(payload, str) or payload is None else json.dumps(payload)
    return SimpleNamespace(text=text)


def image_response(data: bytes = b"\x89PNG", mime_type: str = "image/png") -> SimpleNamespace:
    parts = [
        SimpleNamespace(text="Here is your frame", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)),
    ]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def video_operation(done: bool, uri: str | None = None, error=None) -> SimpleNamespace:
    response = None
    if uri is not None:
        response = SimpleNamespace(
            generated_videos=[SimpleNamespace(video=SimpleNamespace(uri=uri))]
        )
    return SimpleNamespace(done=done, error=error, response=response, result=response)


class FakeModels:
    def __init__(self, responses=(), video_start=None):
        self._responses = list(responses)
        self._video_start = video_start
        self.content_calls: list[dict] = []
        self.video_calls: list[dict] = []

    async def generate_content(self, model, contents, config=None):
        self.content_calls.append({"model": model, "contents": contents, "config": config})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def generate_videos(self, model, prompt, config=None):
        self.video_calls.append({"model": model, "prompt": prompt, "config": config})
        if isinstance(self._video_start, Exception):
            raise self._video_start
        return self._video_start


class FakeOperations:
    def __init__(self, refreshed=()):
        self._refreshed = list(refreshed)
        self.calls = 0

    async def get(self, operation):
        self.calls += 1
        return self._refreshed.pop(0)


class FakeGenAI:
    """Mimics the ``client.aio`` surface of ``google.genai.Client``."""

    def __init__(self, responses=(), video_start=None, refreshed=()):
        self.models = FakeModels(responses, video_start)
        self.operations = FakeOperations(refreshed)
        self.aio = SimpleNamespace(models=self.models, operations=self.operations)


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Production collaborators
# ---------------------------------------------------------------------------

class FakeBackend:
    """Stands in for GeminiClient in state machine tests."""

    def __init__(self, scene=None, image="data:image/png;base64,AAAA", video="https://videos/clip?alt=media",
                 analyze_error=None, storyboard_error=None, video_error=None, progress=()):
        self.scene = scene
        self.image = image
        self.video = video
        self.analyze_error = analyze_error
        self.storyboard_error = storyboard_error
        self.video_error = video_error
        self.progress = list(progress)
        self.analyze_calls = []
        self.storyboard_calls = []
        self.video_calls = []
        self.on_analyze = None
        self.on_video = None

    async def analyze_script(self, document, options):
        self.analyze_calls.append((document, options))
        if self.on_analyze is not None:
            await self.on_analyze()
        if self.analyze_error is not None:
            raise self.analyze_error
        return self.scene

    async def generate_storyboard(self, prompt):
        self.storyboard_calls.append(prompt)
        if self.storyboard_error is not None:
            raise self.storyboard_error
        return self.image

    async def generate_video(self, prompt, on_progress=None):
        self.video_calls.append(prompt)
        for message in self.progress:
            on_progress(message)
        if self.on_video is not None:
            await self.on_video()
        if self.video_error is not None:
            raise self.video_error
        return self.video

    def authorize(self, uri):
        return f"{uri}&key=test-key"


class FakeCredentials:
    def __init__(self, has_key=True, dialog_error=False):
        self.has_key = has_key
        self.dialog_error = dialog_error
        self.dialog_opened = 0

    async def has_selected_key(self):
        return self.has_key

    async def open_select_key(self):
        self.dialog_opened += 1
        if self.dialog_error:
            raise DialogError("Failed to open key selection dialog.")
        self.has_key = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SCENE_PAYLOAD = {
    "title": "Orbit of Regret",
    "description": "A pilot hesitates before the jump home.",
    "visual_prompt": "Static shot, volumetric light across a cramped cockpit.",
    "genre": "Sci-fi",
    "mood": "Epic",
    "characters": ["Reluctant Hero"],
}


@pytest.fixture
def settings() -> Config:
    return Config(
        gemini_api_key="test-key",
        use_vertex=False,
        google_cloud_project="",
        veo_output_bucket="",
        poll_interval=8.0,
        max_poll_time=0,
    )


@pytest.fixture
def scene() -> MovieScene:
    return MovieScene(**SCENE_PAYLOAD)


@pytest.fixture
def scene_with_subtitles() -> MovieScene:
    return MovieScene(
        **SCENE_PAYLOAD,
        subtitles=[
            Subtitle(start_time=0.5, end_time=2.0, text="We're not going back."),
            Subtitle(start_time=2.5, end_time=4.0, text="Then we go forward."),
        ],
    )
