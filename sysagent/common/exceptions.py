"""
Custom Exception Classes for the sysagent

Hierarchical exception structure for error handling across services.
Every error says whether repeating the same request may succeed
(``retry_safe``) so the HTTP layer can tell validation failures apart
from persistence failures.
"""


class AgentError(Exception):
    """Base exception for all sysagent errors"""

    retry_safe = False

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(AgentError):
    """Agent configuration file errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class SystemControlError(AgentError):
    """An OS level action (hostname, clock, reboot, ip) failed"""

    retry_safe = True

    def __init__(self, message: str, action: str | None = None):
        self.action = action
        super().__init__(f"System Error: {message}", recoverable=True)


class VendorConfigError(AgentError):
    """Base for errors raised by the vendor configuration store"""


class StoreReadError(VendorConfigError):
    """Backing file could not be opened or read"""

    retry_safe = True

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"Read Error: {message}")


class ParseError(VendorConfigError):
    """Backing file content could not be parsed"""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(f"Parse Error: {message}")


class NoCurrentSectionError(ParseError):
    """Key/value line found before any [section] header"""

    def __init__(self, line_number: int, key: str):
        self.key = key
        super().__init__(f"key '{key}' appears before any section header", line_number)


class WriteError(VendorConfigError):
    """Persisting the store to disk failed; the on-disk file is unchanged"""

    retry_safe = True

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"Write Error: {message}")


class MissingSectionError(VendorConfigError):
    """Lookup against a section that does not exist"""

    def __init__(self, section: str, field: str | None = None):
        self.section = section
        self.field = field
        message = f"section '{section}' does not exist"
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class MissingKeyError(VendorConfigError):
    """Lookup or set against a key that does not exist"""

    def __init__(self, section: str, key: str, field: str | None = None):
        self.section = section
        self.key = key
        self.field = field
        message = f"key '{key}' does not exist in section '{section}'"
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class DuplicateSectionError(VendorConfigError):
    """Section added through the non-overwriting path already exists"""

    def __init__(self, section: str):
        self.section = section
        super().__init__(f"section '{section}' already exists")


class TypeMismatchError(VendorConfigError):
    """Stored value variant differs from the expected one"""

    def __init__(
        self,
        section: str,
        key: str,
        expected: str,
        actual: str,
        field: str | None = None,
    ):
        self.section = section
        self.key = key
        self.expected = expected
        self.actual = actual
        self.field = field
        message = f"{section}.{key} holds {actual}, expected {expected}"
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class CodecError(VendorConfigError):
    """Malformed input to the comment decoder"""

    def __init__(self, message: str, position: int | None = None):
        self.position = position
        super().__init__(f"Codec Error: {message}")


class BadRequestError(VendorConfigError):
    """Externally supplied field name or value is not acceptable"""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)
