"""Command line interface for SDLC Auditor."""
