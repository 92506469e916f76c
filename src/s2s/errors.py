"""Errors raised while producing a scene.

Every error carries a message that is shown to the user as-is.
"""


class ProductionError(Exception):
    """Base class for all recoverable production failures."""


class InputError(ProductionError):
    """The uploaded file is not a PDF script."""


class AnalysisError(ProductionError):
    """Script analysis failed or returned data outside the contract."""


class StoryboardError(ProductionError):
    """The storyboard still could not be generated."""


class VideoError(ProductionError):
    """The video job failed or produced no playable reference."""


class VideoTimeoutError(VideoError):
    """The video job did not finish within the configured poll bound."""


class CredentialExpired(ProductionError):
    """The backend rejected the credential; a new one must be selected."""


class DialogError(ProductionError):
    """The credential selection dialog could not be completed."""
