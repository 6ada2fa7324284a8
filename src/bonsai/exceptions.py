"""Custom exceptions for planet generation."""


class BonsaiError(Exception):
    """Base exception for planet generation errors."""

    pass


class ConfigurationError(BonsaiError):
    """Raised when a biome or generation option cannot be resolved."""

    pass


class GenerationError(BonsaiError):
    """Raised when mesh generation fails inside the worker."""

    pass


class TransportError(BonsaiError):
    """Raised when a message cannot be encoded or decoded."""

    pass
