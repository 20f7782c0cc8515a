"""
Common Utilities

Shared modules used across all services:
- config.py - Configuration dataclasses
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- timespec.py - Hex timespec helpers
"""

from .config import (
    AgentConfig,
    ServerSettings,
    PlatformSettings,
    SystemSettings,
    WebpageSettings,
    LoggingSettings,
    PlatformKind,
    load_agent_config,
    load_config_file,
)
from .exceptions import (
    AgentError,
    ConfigError,
    SystemControlError,
    VendorConfigError,
    StoreReadError,
    ParseError,
    NoCurrentSectionError,
    WriteError,
    MissingSectionError,
    MissingKeyError,
    DuplicateSectionError,
    TypeMismatchError,
    CodecError,
    BadRequestError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    configure_levels,
    log_field_update,
)
from .timespec import timespec_to_hex, hex_to_timespec

__all__ = [
    # Config
    "AgentConfig",
    "ServerSettings",
    "PlatformSettings",
    "SystemSettings",
    "WebpageSettings",
    "LoggingSettings",
    "PlatformKind",
    "load_agent_config",
    "load_config_file",
    # Exceptions
    "AgentError",
    "ConfigError",
    "SystemControlError",
    "VendorConfigError",
    "StoreReadError",
    "ParseError",
    "NoCurrentSectionError",
    "WriteError",
    "MissingSectionError",
    "MissingKeyError",
    "DuplicateSectionError",
    "TypeMismatchError",
    "CodecError",
    "BadRequestError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "configure_levels",
    "log_field_update",
    # Timespec
    "timespec_to_hex",
    "hex_to_timespec",
]
