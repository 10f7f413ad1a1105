"""Core functionality for Portrait Studio.

This module provides the components shared by both front ends:

- **StudioConfig / config**: Configuration management using Pydantic Settings
- **StudioClient**: Analysis and image generation calls to the Gemini API
- **StudioSession / SessionStatus**: The upload → analyse → generate workflow
- **Plan models**: PlannedPrompt, CharacterAnalysis, GeneratedImage

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration, PORTRAIT_ prefix, .env support

2. **Service Layer** (studio_client.py, prompts.py):
   - One analysis call, then a bounded parallel fan-out of generation calls

3. **State Layer** (session.py, plan.py):
   - Workflow state machine with epoch-based cancellation

4. **Support Utilities**:
   - images.py: Upload validation and data URL handling
   - outputs.py: Optional saving of generated images
   - errors.py: User-facing exception hierarchy

Usage Example
-------------
    from portraitstudio.core import StudioClient, StudioSession, config
    from portraitstudio.core.images import load_upload_file

    studio = StudioClient(config)
    session = StudioSession()

    epoch = session.start_analysis(load_upload_file("me.jpg"))
    session.complete_analysis(epoch, studio.analyze(session.original))

    epoch = session.start_generation()
    session.complete_generation(epoch, studio.generate_all(session.original, session.plan))
"""

from portraitstudio.core.config import StudioConfig, config
from portraitstudio.core.errors import (
    AnalysisError,
    GenerationError,
    InvalidImageError,
    InvalidTransitionError,
    StudioClientError,
    StudioError,
)
from portraitstudio.core.plan import CharacterAnalysis, GeneratedImage, PlannedPrompt
from portraitstudio.core.session import SessionStatus, StudioSession
from portraitstudio.core.studio_client import StudioClient

__all__ = [
    "AnalysisError",
    "CharacterAnalysis",
    "GeneratedImage",
    "GenerationError",
    "InvalidImageError",
    "InvalidTransitionError",
    "PlannedPrompt",
    "SessionStatus",
    "StudioClient",
    "StudioClientError",
    "StudioConfig",
    "StudioError",
    "StudioSession",
    "config",
]
