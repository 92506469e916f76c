"""Production state machine.

Sequences one project through its phases:

    KEY_SELECTION -> UPLOAD -> CONFIGURE -> ANALYZING -> STORYBOARD -> GENERATING -> RESULT

Each user action maps to exactly one method. Methods that call the generation
backend catch every ``ProductionError`` and move to the recoverable phase for
that action; nothing else propagates except cancellation.

Every attempt takes a new epoch from the store. Results, failures and progress
of an attempt are applied only while its epoch is still current, so work that
finishes after a reset or a newer attempt is discarded.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from ..errors import CredentialExpired, DialogError, InputError, ProductionError
from ..models import Phase, ProjectState
from ..services.credentials import CredentialManager
from ..services.gemini import GeminiClient, PDF_MIME_TYPE
from . import store
from .progress import ProgressChannel
from .store import SessionStore

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Your API key session expired. Please re-select your project."
INVALID_UPLOAD_MESSAGE = "Please upload a valid PDF script."
ANALYZING_MESSAGE = "Analyzing Narrative Beats..."
STORYBOARD_MESSAGE = "Rendering Cinematic Vision..."
RENDER_START_MESSAGE = "Initializing cinematic engine..."


def check_upload(mime_type: Optional[str]) -> None:
    """Raise InputError unless the upload is exactly PDF-typed."""
    if mime_type != PDF_MIME_TYPE:
        raise InputError(INVALID_UPLOAD_MESSAGE)


class Production:
    """Drives a single project instance through the production phases."""

    def __init__(
        self,
        client: GeminiClient,
        credentials: CredentialManager,
        session: Optional[SessionStore] = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._session = session or SessionStore()
        self._inflight: Optional[asyncio.Task] = None

    @property
    def session(self) -> SessionStore:
        return self._session

    @property
    def state(self) -> ProjectState:
        return self._session.state

    @property
    def phase(self) -> Phase:
        return self._session.state.phase

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def start(self) -> Phase:
        """Skip credential selection when a credential is already available."""
        if self.phase is Phase.KEY_SELECTION and await self._credentials.has_selected_key():
            self._session.apply(store.enter_phase, Phase.UPLOAD)
        return self.phase

    async def select_key(self) -> Phase:
        """Open the credential dialog; on success continue to UPLOAD."""
        if self.phase is not Phase.KEY_SELECTION:
            return self.phase
        try:
            await self._credentials.open_select_key()
        except DialogError as e:
            self._session.apply(store.set_error, str(e))
            return self.phase
        self._session.apply(store.enter_phase, Phase.UPLOAD)
        return self.phase

    # ------------------------------------------------------------------
    # Upload and configuration
    # ------------------------------------------------------------------

    def upload(self, name: str, mime_type: Optional[str], data: bytes) -> Phase:
        """Accept a script upload. Only PDF files move on to CONFIGURE."""
        if self.phase is not Phase.UPLOAD:
            return self.phase
        try:
            check_upload(mime_type)
        except InputError as e:
            logger.info(f"Rejected upload {name!r} ({mime_type})")
            self._session.apply(store.set_error, str(e))
            return self.phase

        logger.info(f"Loaded script {name!r} ({len(data)} bytes)")
        self._session.apply(store.load_document, name, data)
        return self.phase

    def can_request_storyboard(self) -> bool:
        state = self.state
        return (
            state.phase is Phase.CONFIGURE
            and state.document is not None
            and state.config.ready
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def request_storyboard(self) -> Phase:
        """Analyze the script and generate its storyboard still.

        Fires only from CONFIGURE with a document and at least one archetype.
        """
        if not self.can_request_storyboard():
            logger.warning(f"Storyboard request ignored in {self.phase.value}")
            return self.phase

        state = self.state
        with self._attempt(Phase.ANALYZING, ANALYZING_MESSAGE, Phase.CONFIGURE) as epoch:
            try:
                scene = await self._client.analyze_script(state.document, state.config)
                if not self._is_current(epoch):
                    return self.phase
                self._session.apply(store.set_progress, STORYBOARD_MESSAGE)
                image = await self._client.generate_storyboard(scene.visual_prompt)
            except CredentialExpired as e:
                self._expire(epoch, e)
                return self.phase
            except ProductionError as e:
                if self._is_current(epoch):
                    logger.error(f"Storyboard attempt failed: {e}")
                    self._session.apply(store.fail, Phase.CONFIGURE, str(e))
                return self.phase

            if self._is_current(epoch):
                scene = scene.model_copy(update={"storyboard_image": image})
                self._session.apply(store.storyboard_ready, scene)
        return self.phase

    async def render_video(self) -> Phase:
        """Render the final video from the current scene.

        Fires from STORYBOARD, or from RESULT to regenerate.
        """
        state = self.state
        if state.phase not in (Phase.STORYBOARD, Phase.RESULT) or state.scene is None:
            logger.warning(f"Render request ignored in {state.phase.value}")
            return self.phase

        with self._attempt(Phase.GENERATING, RENDER_START_MESSAGE, Phase.STORYBOARD) as epoch:
            with ProgressChannel(lambda message: self._report(epoch, message)) as channel:
                try:
                    uri = await self._client.generate_video(state.scene.visual_prompt, channel)
                except CredentialExpired as e:
                    self._expire(epoch, e)
                    return self.phase
                except ProductionError as e:
                    if self._is_current(epoch):
                        logger.error(f"Render failed: {e}")
                        self._session.apply(store.fail, Phase.STORYBOARD, str(e))
                    return self.phase

            if self._is_current(epoch):
                self._session.apply(store.video_ready, self._client.authorize(uri))
        return self.phase

    async def regenerate(self) -> Phase:
        return await self.render_video()

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def edit_storyboard(self) -> Phase:
        """Go back from the result to the storyboard to edit subtitles."""
        if self.phase is Phase.RESULT:
            self._session.apply(store.enter_phase, Phase.STORYBOARD)
        return self.phase

    def update_subtitle_text(self, index: int, text: str) -> ProjectState:
        return self._session.update_subtitle_text(index, text)

    def update_subtitle_time(self, index: int, field: str, raw) -> ProjectState:
        return self._session.update_subtitle_time(index, field, raw)

    def video_loaded(self) -> ProjectState:
        return self._session.apply(store.mark_video_loaded)

    def new_project(self) -> Phase:
        """Abandon the current project and return to UPLOAD."""
        if self.phase is Phase.KEY_SELECTION:
            return self.phase
        self._cancel_inflight()
        self._session.reset()
        return self.phase

    reset = new_project

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextmanager
    def _attempt(self, phase: Phase, message: str, recover: Phase) -> Iterator[int]:
        """Enter ``phase`` for one attempt and yield its epoch.

        If the attempt is cancelled while still current, the state falls back
        to ``recover`` before the cancellation propagates.
        """
        epoch = self._session.apply(store.begin, phase, message).epoch
        task = asyncio.current_task()
        self._inflight = task
        try:
            yield epoch
        except asyncio.CancelledError:
            if self._is_current(epoch):
                self._session.apply(store.fail, recover, None)
            logger.info(f"{phase.value} attempt cancelled")
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

    def _cancel_inflight(self) -> None:
        task = self._inflight
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not None and not task.done() and task is not current:
            logger.info("Cancelling in-flight generation")
            task.cancel()
        self._inflight = None

    def _is_current(self, epoch: int) -> bool:
        if self.state.epoch != epoch:
            logger.warning(f"Discarding stale result of attempt {epoch} (now {self.state.epoch})")
            return False
        return True

    def _report(self, epoch: int, message: str) -> None:
        if self.state.epoch == epoch:
            self._session.apply(store.set_progress, message)

    def _expire(self, epoch: int, error: CredentialExpired) -> None:
        if not self._is_current(epoch):
            return
        logger.warning(f"Credential rejected by backend: {error}")
        self._session.apply(store.expire_session, SESSION_EXPIRED_MESSAGE)
