"""Failures raised at the generation service boundary and by workflow actions."""
from __future__ import annotations


class GenerationError(Exception):
    """Base class for a failed generation attempt."""


class CredentialError(GenerationError):
    """The credential is missing, invalid or lacks permission."""


class MalformedResponse(GenerationError):
    """A JSON-constrained completion did not parse into the expected structure."""


class NoImageGenerated(GenerationError):
    """An image completion came back without inline image data."""


class GenerationFailure(GenerationError):
    """Any other failure, e.g. transport or quota errors."""


class InvalidTransition(ValueError):
    """A workflow action was triggered at the wrong step."""
