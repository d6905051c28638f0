"""
Exception types shared across the engine.
"""


class ConfigurationError(ValueError):
    """Raised at initialization when a band layout or config value is invalid."""
