"""
HealthVoice extraction pipeline.

The package exposes `create_app()` for FastAPI runners.
"""

from .main import create_app

__all__ = ["create_app"]
