"""Route modules."""

from .transcriptions import router as transcriptions_router
from .videos import router as videos_router

__all__ = ["transcriptions_router", "videos_router"]
