"""Configuration management for Portrait Studio.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PORTRAIT_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PORTRAIT_* prefix)
2. .env file in the project root
3. Default values defined in StudioConfig

The API key is the one exception to the prefix rule: it is also read from the
``GEMINI_API_KEY`` and ``GOOGLE_API_KEY`` variables that the Google SDK and
most deployment guides use.

Example .env file:
    GEMINI_API_KEY=your-key
    PORTRAIT_ANALYSIS_MODEL=gemini-2.5-flash
    PORTRAIT_IMAGE_MODEL=gemini-2.5-flash-image
    PORTRAIT_MAX_PARALLEL_REQUESTS=4

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.

    from portraitstudio.core.config import config

    print(config.analysis_model)
    print(config.outputs_dir)

Directory Management
--------------------
The configuration creates ``outputs_dir`` on initialization.  The static and
template directories ship inside the package and are resolved relative to it.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


class StudioConfig(BaseSettings):
    """Main configuration for Portrait Studio.

    Attributes
    ----------
    Model Settings:
        gemini_api_key : str | None
            API key for the hosted Gemini service
        analysis_model : str
            Model used for the character analysis call
        image_model : str
            Model used for each image generation call

    Generation Settings:
        max_parallel_requests : int
            Upper bound on concurrent generation calls (1-16)
        request_timeout_seconds : float
            Per-call timeout handed to the SDK's HTTP options
        max_upload_bytes : int
            Largest accepted upload

    Persistence:
        save_outputs : bool
            Write generated images and sidecar metadata to ``outputs_dir``
        outputs_dir : Path
            Directory for saved images

    Paths:
        static_dir : Path
            CSS/JS served by the web app
        templates_dir : Path
            Location of ``index.html``

    Server Settings:
        server_host / server_port : FastAPI (uvicorn) bind address
        gradio_server_name / gradio_server_port / gradio_share : Gradio launch options

    Notes
    -----
    - Configuration is immutable after initialization
    - To modify config, set environment variables and restart the application

    Examples
    --------
        >>> custom = StudioConfig(max_parallel_requests=2, save_outputs=True)
        >>> custom.max_parallel_requests
        2
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PORTRAIT_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Hosted model settings
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "gemini_api_key",
            "PORTRAIT_GEMINI_API_KEY",
            "GEMINI_API_KEY",
            "GOOGLE_API_KEY",
        ),
        description="API key for the Gemini API",
    )
    analysis_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used to analyse the uploaded portrait and author the plan",
    )
    image_model: str = Field(
        default="gemini-2.5-flash-image",
        description="Model used to synthesise each image variant",
    )

    # Generation settings
    max_parallel_requests: int = Field(
        default=4,
        description="Maximum number of generation calls in flight at once",
        ge=1,
        le=16,
    )
    request_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for a single API call",
        gt=0,
    )
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        description="Largest accepted upload in bytes",
        ge=1024,
    )

    # Persistence
    save_outputs: bool = Field(
        default=False,
        description="Save generated images and JSON metadata to outputs_dir",
    )
    outputs_dir: Path = Field(
        default=Path("outputs"),
        description="Directory to save generated images",
    )

    # Packaged assets
    static_dir: Path = Field(default=_PACKAGE_DIR / "static")
    templates_dir: Path = Field(default=_PACKAGE_DIR / "templates")

    # Web app (FastAPI) settings
    server_host: str = Field(default="0.0.0.0", description="uvicorn bind address")
    server_port: int = Field(default=8000, ge=1024, le=65535)

    # Gradio settings
    gradio_server_name: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    gradio_server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    gradio_share: bool = Field(
        default=False,
        description="Create public gradio.live link (keep False for local-only)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create the outputs directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    @property
    def has_api_key(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.gemini_api_key and self.gemini_api_key.strip())


# Global configuration instance
config = StudioConfig()
