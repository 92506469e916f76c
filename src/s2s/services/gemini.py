"""Google Gemini and Veo client wrapper for script analysis, storyboards and renders."""

import asyncio
import base64
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Type

import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from google.cloud import storage
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from ..config import Config, config as default_config
from ..errors import (
    AnalysisError,
    CredentialExpired,
    ProductionError,
    StoryboardError,
    VideoError,
    VideoTimeoutError,
)
from ..models import GenerationConfig, MovieScene
from .prompts import STORYBOARD_QUALIFIERS, build_analysis_prompt, progress_message
from .schemas import analysis_schema

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

# Backend messages meaning the selected key or project is no longer usable
CREDENTIAL_MARKERS = (
    "Requested entity was not found",
    "API key expired",
    "API key not valid",
)

ProgressCallback = Callable[[str], None]


def _has_credential_marker(text: str) -> bool:
    return any(marker in text for marker in CREDENTIAL_MARKERS)


def is_credential_failure(exc: BaseException) -> bool:
    """Return True if a backend failure means the credential must be reselected."""
    if isinstance(exc, genai_errors.APIError) and exc.code == 401:
        return True
    return _has_credential_marker(str(exc))


def classify_error(
    exc: Exception,
    error_cls: Type[ProductionError],
    fallback: str,
) -> ProductionError:
    """Map a backend failure onto the production error taxonomy.

    Args:
        exc: The exception raised by the backend or the transport.
        error_cls: Error type of the operation that failed.
        fallback: Message used when the failure carries no text.

    Returns:
        A ProductionError instance; ``exc`` itself if it already is one.
    """
    if isinstance(exc, ProductionError):
        return exc
    if is_credential_failure(exc):
        return CredentialExpired(str(exc) or fallback)
    message = getattr(exc, "message", None) or str(exc) or fallback
    return error_cls(message)


def _first_inline_image(response: Any) -> Optional[tuple[bytes, str]]:
    """Return data and MIME type of the first inline part of the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return inline.data, inline.mime_type or "image/png"
    return None


class GeminiClient:
    """Client wrapper for the three generation calls of a production.

    This client handles:
    - Analyzing a PDF script into a structured scene
    - Generating the storyboard still from the scene's visual prompt
    - Starting a Veo render and polling it until done, reporting progress
    - Classifying backend failures, including credential expiry

    A backend client is created per call from the current settings, so a
    credential selected mid-session takes effect on the next call.
    """

    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_DELAY = 2.0

    def __init__(
        self,
        settings: Optional[Config] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings. Defaults to the global config.
            client: Prebuilt ``genai.Client``-compatible object used for every
                call instead of creating one from the settings.
            sleep: Coroutine used to wait between polls.
            max_retries: Download attempts for transient failures.
            retry_delay: Base delay between download retries (exponential backoff).
        """
        self._settings = settings or default_config
        self._client = client
        self._sleep = sleep
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    @property
    def settings(self) -> Config:
        return self._settings

    def _connect(self) -> Any:
        """Return the backend client for one call."""
        if self._client is not None:
            return self._client

        self._settings.validate_required()
        if self._settings.use_vertex:
            logger.debug(
                f"Connecting to Vertex AI ({self._settings.google_cloud_project}, "
                f"{self._settings.google_cloud_location})"
            )
            return genai.Client(
                vertexai=True,
                project=self._settings.google_cloud_project,
                location=self._settings.google_cloud_location,
            )
        return genai.Client(api_key=self._settings.gemini_api_key)

    async def analyze_script(self, document: bytes, options: GenerationConfig) -> MovieScene:
        """Analyze a PDF script into a scene matching the creative parameters.

        Args:
            document: Raw bytes of the PDF script.
            options: Genre, mood, camera, archetypes and subtitle setting.

        Returns:
            MovieScene with subtitles only if they were requested.

        Raises:
            AnalysisError: If the call fails or the reply breaks the schema.
            CredentialExpired: If the backend rejected the credential.
        """
        schema = analysis_schema(options.include_subtitles)
        prompt = build_analysis_prompt(options)
        model = self._settings.analysis_model

        logger.info(f"Analyzing script ({len(document)} bytes) with {model}")
        logger.debug(f"Prompt: {prompt[:100]}...")

        try:
            response = await self._connect().aio.models.generate_content(
                model=model,
                contents=[
                    types.Part.from_bytes(data=document, mime_type=PDF_MIME_TYPE),
                    prompt,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                ),
            )
        except Exception as e:
            logger.error(f"Script analysis failed: {e}")
            raise classify_error(e, AnalysisError, "Failed to analyze script") from e

        text = getattr(response, "text", None)
        if not text:
            raise AnalysisError("Failed to analyze script")

        try:
            analysis = schema.model_validate_json(text)
        except ValidationError as e:
            logger.error(f"Analysis reply does not match {schema.__name__}: {e}")
            logger.debug(f"Raw response: {text}")
            raise AnalysisError("The script analysis returned an incomplete scene") from e

        scene = MovieScene(**analysis.model_dump())
        logger.info(f"Analyzed scene: '{scene.title}'")
        return scene

    async def generate_storyboard(self, prompt: str) -> str:
        """Generate the storyboard still for a visual prompt.

        Returns:
            The image as a ``data:`` URI.

        Raises:
            StoryboardError: If the call fails or the reply holds no image.
            CredentialExpired: If the backend rejected the credential.
        """
        model = self._settings.storyboard_model
        logger.info(f"Generating storyboard with {model}")

        try:
            response = await self._connect().aio.models.generate_content(
                model=model,
                contents=prompt + STORYBOARD_QUALIFIERS,
            )
        except Exception as e:
            logger.error(f"Storyboard generation failed: {e}")
            raise classify_error(e, StoryboardError, "Failed to generate storyboard image") from e

        image = _first_inline_image(response)
        if image is None:
            raise StoryboardError("Failed to generate storyboard image")

        data, mime_type = image
        if isinstance(data, bytes):
            data = base64.b64encode(data).decode("ascii")
        return f"data:{mime_type};base64,{data}"

    async def generate_video(
        self,
        prompt: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Render a video for a visual prompt, polling until the job is done.

        Args:
            prompt: Visual prompt taken from the analyzed scene.
            on_progress: Called with one status line per poll that finds the
                job still running.

        Returns:
            Download URI of the video. Use ``authorize`` before playback.

        Raises:
            VideoError: If the job fails or yields no video.
            VideoTimeoutError: If the job outlives the configured poll bound.
            CredentialExpired: If the backend rejected the credential.
        """
        model = self._settings.video_model
        params = {
            "number_of_videos": 1,
            "resolution": "1080p",
            "aspect_ratio": "16:9",
        }
        if self._settings.use_vertex and self._settings.veo_output_bucket:
            params["output_gcs_uri"] = self._settings.veo_output_bucket
        video_config = types.GenerateVideosConfig(**params)

        logger.info(f"Starting video generation with {model}")
        logger.debug(f"Prompt: {prompt[:100]}...")

        try:
            client = self._connect()
            operation = await client.aio.models.generate_videos(
                model=model,
                prompt=prompt,
                config=video_config,
            )
            operation = await self._poll_operation(client, operation, on_progress)
        except ProductionError:
            raise
        except Exception as e:
            logger.error(f"Video generation failed: {e}")
            raise classify_error(e, VideoError, "Video generation failed") from e

        if operation.error:
            message = f"Video generation failed: {operation.error}"
            logger.error(message)
            if _has_credential_marker(message):
                raise CredentialExpired(message)
            raise VideoError(message)

        video_response = operation.response or getattr(operation, "result", None)
        generated = getattr(video_response, "generated_videos", None) or []
        video = generated[0].video if generated else None
        uri = getattr(video, "uri", None)
        if not uri:
            raise VideoError("Video generation failed")

        logger.info(f"Video ready: {uri}")
        return uri

    async def _poll_operation(
        self,
        client: Any,
        operation: Any,
        on_progress: Optional[ProgressCallback],
    ) -> Any:
        """Poll a video operation until it reports done.

        Time is measured as the total poll interval waited so far.
        """
        interval = self._settings.poll_interval
        limit = self._settings.poll_limit
        waited = 0.0
        poll_count = 0

        while not operation.done:
            if limit is not None and waited >= limit:
                logger.warning(f"Video operation timed out after {waited:.0f}s")
                raise VideoTimeoutError(
                    f"Video generation timed out after {limit:.0f} seconds"
                )

            message = progress_message(poll_count)
            poll_count += 1
            logger.debug(f"Video still rendering (poll {poll_count}): {message}")
            if on_progress is not None:
                on_progress(message)

            await self._sleep(interval)
            waited += interval
            operation = await client.aio.operations.get(operation)

        logger.info(f"Video operation done after {poll_count} polls")
        return operation

    def authorize(self, uri: str) -> str:
        """Return a playable reference, appending the API key to Gemini API links."""
        key = self._settings.gemini_api_key
        if self._settings.use_vertex or not key or not uri.startswith("http"):
            return uri
        separator = "&" if "?" in uri else "?"
        return f"{uri}{separator}key={key}"

    def download_video(self, uri: str, output_path: Path) -> Path:
        """Download a rendered video to a local path.

        Args:
            uri: Download URI from ``generate_video`` (https or gs://).
            output_path: Local path to save the video.

        Returns:
            The path written.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if uri.startswith("gs://"):
            self._download_from_gcs(uri, output_path)
        else:
            self._download_from_http(uri, output_path)
        logger.info(f"Downloaded video to {output_path}")
        return output_path

    def _download_from_http(self, url: str, output_path: Path) -> None:
        headers = {}
        if self._settings.gemini_api_key:
            headers["x-goog-api-key"] = self._settings.gemini_api_key
        with requests.get(url, headers=headers, stream=True, timeout=60) as r:
            r.raise_for_status()
            with open(output_path, "wb") as f:
                for chunk in r.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)

    def _download_from_gcs(self, gcs_uri: str, output_path: Path) -> None:
        """Download a file from GCS to a local path."""
        uri_parts = gcs_uri[5:].split("/", 1)
        if len(uri_parts) != 2:
            raise ValueError(f"Invalid GCS URI format: {gcs_uri}")

        bucket_name, blob_name = uri_parts
        storage_client = storage.Client(project=self._settings.google_cloud_project or None)

        # Download with retry
        for attempt in range(self._max_retries):
            try:
                blob = storage_client.bucket(bucket_name).blob(blob_name)
                blob.download_to_filename(str(output_path))
                return

            except google_exceptions.NotFound:
                logger.error(f"File not found in GCS: {gcs_uri}")
                raise

            except Exception as e:
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Download failed (attempt {attempt + 1}): {e}. Retrying in {delay}s...")
                if attempt == self._max_retries - 1:
                    raise
                time.sleep(delay)
