"""
Exceptions raised while constructing a topology.

Errors raised by the resource engine itself (CDK/jsii errors, naming
collisions, quota problems) are not wrapped here; they propagate unchanged.
"""


class GroundworkError(Exception):
    """Base class for topology construction errors."""


class ConfigurationError(GroundworkError, ValueError):
    """The topology configuration is invalid. Nothing was registered for the failing step."""


class DependencyError(GroundworkError, RuntimeError):
    """A resource referenced a handle that was not declared or does not exist."""
