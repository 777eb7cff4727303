"""Request handlers."""

from .static import Candidate, StaticFileHandler, fallback_candidates, send_file, serve_static

__all__ = ["Candidate", "StaticFileHandler", "fallback_candidates", "send_file", "serve_static"]
