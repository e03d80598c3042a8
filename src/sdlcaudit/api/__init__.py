"""HTTP interface for SDLC Auditor."""

from .app import create_app

__all__ = ["create_app"]
