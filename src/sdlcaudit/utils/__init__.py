"""Utility helpers for SDLC Auditor."""
