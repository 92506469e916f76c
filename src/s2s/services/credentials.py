"""Credential availability checks and the key selection dialog."""

import asyncio
import logging
from typing import Callable, Optional

import google.auth

from ..config import Config, config as default_config
from ..errors import DialogError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

KeyDialog = Callable[[], Optional[str]]


class CredentialManager:
    """Checks for a usable credential and lets the user select a new one.

    The dialog is supplied by the front end; it blocks until the user enters
    an API key and returns it, or raises if it could not be shown.
    """

    def __init__(
        self,
        settings: Optional[Config] = None,
        dialog: Optional[KeyDialog] = None,
    ) -> None:
        self._settings = settings or default_config
        self._dialog = dialog

    async def has_selected_key(self) -> bool:
        """Return True if a credential is available. Probe failures count as none."""
        try:
            return await asyncio.to_thread(self._probe)
        except Exception as e:
            logger.warning(f"Credential probe failed: {e}")
            return False

    def _probe(self) -> bool:
        if self._settings.gemini_api_key:
            return True
        if not self._settings.use_vertex:
            return False

        # Application Default Credentials back Vertex AI mode
        _, project = google.auth.default(scopes=SCOPES)
        return bool(self._settings.google_cloud_project or project)

    async def open_select_key(self) -> None:
        """Show the key dialog and store the entered key.

        Raises:
            DialogError: If the dialog could not be shown or nothing was entered.
        """
        if self._dialog is None:
            raise DialogError("Failed to open key selection dialog.")

        try:
            key = await asyncio.to_thread(self._dialog)
        except Exception as e:
            logger.error(f"Key selection dialog failed: {e}")
            raise DialogError("Failed to open key selection dialog.") from e

        if not key or not key.strip():
            raise DialogError("No API key was entered.")

        self._settings.gemini_api_key = key.strip()
        self._settings.use_vertex = False
        logger.info("API key selected")
