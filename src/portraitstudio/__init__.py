"""Portrait Studio - AI portrait photoshoots from a single uploaded photo."""

__version__ = "0.1.0"

from portraitstudio.core.config import StudioConfig, config
from portraitstudio.core.session import SessionStatus, StudioSession
from portraitstudio.core.studio_client import StudioClient

__all__ = [
    "SessionStatus",
    "StudioClient",
    "StudioConfig",
    "StudioSession",
    "config",
]
