"""Custom exception hierarchy for urdfval."""


class UrdfvalError(Exception):
    """Base exception for all urdfval errors."""


class ParseError(UrdfvalError):
    """Raised when a robot description cannot be read or fails its schema."""


class ConfigError(UrdfvalError):
    """Raised when an engine configuration file is unreadable or invalid."""


class DiscoveryError(UrdfvalError):
    """Raised when no robot is found in the scene before the discovery timeout."""


class EngineError(UrdfvalError):
    """Raised on engine misuse (re-entrant pass, unknown joint or link name)."""
