"""External service integrations."""

from .credentials import CredentialManager
from .gemini import GeminiClient, classify_error, is_credential_failure
from .schemas import SceneAnalysis, SceneAnalysisWithSubtitles, analysis_schema

__all__ = [
    "CredentialManager",
    "GeminiClient",
    "classify_error",
    "is_credential_failure",
    "SceneAnalysis",
    "SceneAnalysisWithSubtitles",
    "analysis_schema",
]
