"""Configuration management."""

import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


class Config(BaseModel):
    """Application configuration."""

    # Credentials
    gemini_api_key: str = Field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", ""),
        description="Gemini Developer API key"
    )
    use_vertex: bool = Field(
        default_factory=lambda: _env_flag("GOOGLE_GENAI_USE_VERTEXAI"),
        description="Route requests through Vertex AI instead of the Gemini API"
    )
    google_cloud_project: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""),
        description="Google Cloud project ID (Vertex AI mode)"
    )
    google_cloud_location: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        description="Vertex AI region"
    )
    veo_output_bucket: str = Field(
        default_factory=lambda: os.getenv("VEO_OUTPUT_BUCKET", ""),
        description="Optional GCS bucket for Vertex video output"
    )

    # Model settings
    analysis_model: str = Field(
        default_factory=lambda: os.getenv("S2S_ANALYSIS_MODEL", "gemini-3-flash-preview"),
        description="Model used to analyze the uploaded script"
    )
    storyboard_model: str = Field(
        default_factory=lambda: os.getenv("S2S_STORYBOARD_MODEL", "gemini-2.5-flash-image"),
        description="Image model used for the storyboard still"
    )
    video_model: str = Field(
        default_factory=lambda: os.getenv("S2S_VIDEO_MODEL", "veo-3.1-fast-generate-preview"),
        description="Veo model used for the final render"
    )

    # Polling
    poll_interval: float = Field(
        default_factory=lambda: _env_float("S2S_POLL_INTERVAL", 8.0),
        description="Seconds between video job status checks"
    )
    max_poll_time: Optional[float] = Field(
        default_factory=lambda: _env_float("S2S_MAX_POLL_TIME", 900.0),
        description="Upper bound in seconds on a video job; <= 0 disables it"
    )

    # Paths
    output_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("S2S_OUTPUT_DIR", "productions")),
        description="Directory for storyboard stills, renders and subtitle files"
    )

    class Config:
        """Pydantic config."""
        frozen = False

    @property
    def poll_limit(self) -> Optional[float]:
        """Return the effective poll bound, or None when unbounded."""
        if self.max_poll_time is None or self.max_poll_time <= 0:
            return None
        return self.max_poll_time

    def validate_required(self) -> None:
        """Validate that credentials for the generation backend are set.

        Raises:
            ValueError: If no usable credential configuration is present.
        """
        if self.use_vertex:
            if not self.google_cloud_project:
                raise ValueError(
                    "GOOGLE_CLOUD_PROJECT not set. Vertex AI mode requires a project."
                )
        elif not self.gemini_api_key:
            raise ValueError(
                "GEMINI_API_KEY not set. Set it or enable GOOGLE_GENAI_USE_VERTEXAI."
            )

        # Validate bucket format
        if self.veo_output_bucket and not self.veo_output_bucket.startswith("gs://"):
            raise ValueError(
                f"VEO_OUTPUT_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self.veo_output_bucket}"
            )


# Global config instance
config = Config()
