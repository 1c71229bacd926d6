"""
API package
"""

from .tools import router as tools_router
from .analysis import router as analysis_router

__all__ = ["tools_router", "analysis_router"]
