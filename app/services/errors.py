# app/services/errors.py

"""Error taxonomy shared by the generation services and the interpreter."""

from __future__ import annotations


class StudioError(Exception):
    """Base class for every error the studio raises on purpose."""


class BriaConfigError(StudioError, RuntimeError):
    """Raised when required Bria config/env vars are missing."""


class BriaClientError(StudioError):
    """Simple wrapper for Bria API errors."""


class RequestTimeoutError(BriaClientError, TimeoutError):
    """A request or polling deadline elapsed before an answer arrived."""


class NetworkError(BriaClientError):
    """The request failed at the transport level, before any response."""


class GenerationError(BriaClientError):
    """The backend answered but signalled failure or sent an unusable payload."""


class InterpretationError(StudioError):
    """The prompt-to-JSON step (Gemini) failed."""


class BatchEmptyError(InterpretationError):
    """A batch interpretation produced no usable scenes."""
