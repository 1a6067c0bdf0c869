"""Core utilities and infrastructure."""

from .config import Settings, get_settings
from .validate import (
    ValidationError,
    validate_script_size,
    validate_data_depth,
)
from .logging_config import configure_logging, get_logger, LogContext
from .json import JSONParseError, dumps, loads, loads_object
from .hash import Algorithm, hash_string, hash_bytes, hash_canonical, document_fingerprint
from .id import IdFactory, SequentialIdFactory, Prefix, is_valid, extract_prefix, kind_of


def create_container(settings: Settings | None = None):
    """Create dependency injection container (lazy import to avoid circular deps)."""
    from .container import create_container as _create_container

    return _create_container(settings)


__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Validation
    "ValidationError",
    "validate_script_size",
    "validate_data_depth",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # JSON
    "JSONParseError",
    "dumps",
    "loads",
    "loads_object",
    # Hashing
    "Algorithm",
    "hash_string",
    "hash_bytes",
    "hash_canonical",
    "document_fingerprint",
    # IDs
    "IdFactory",
    "SequentialIdFactory",
    "Prefix",
    "is_valid",
    "extract_prefix",
    "kind_of",
    # DI
    "create_container",
]
