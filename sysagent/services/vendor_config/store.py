"""
Typed INI Store

In-memory, section keyed table of typed scalar values read from and
written back to the vendor's INI-like configuration file:

    [SectionName]
    key1 = "string value"
    key2 = 123
    key3 = 4.5
    key4 = true

Quoting marks text; unquoted values are inferred as integer, float,
boolean or raw text, in that order. The file is always rewritten in
full, through a temp file and an atomic rename.
"""

import os
import re
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from sysagent.common.exceptions import (
    DuplicateSectionError,
    MissingKeyError,
    MissingSectionError,
    NoCurrentSectionError,
    ParseError,
    StoreReadError,
    TypeMismatchError,
    WriteError,
)
from sysagent.common.logging_setup import get_service_logger

logger = get_service_logger("vendor_config.store")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


class ValueKind(str, Enum):
    """The four value variants the store can hold"""
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class TypedValue:
    """A scalar tagged with its variant. No implicit coercion between variants."""
    kind: ValueKind
    value: str | int | float | bool

    @classmethod
    def text(cls, value: str) -> "TypedValue":
        if not isinstance(value, str):
            raise TypeError(f"Text value must be str, got {type(value).__name__}")
        return cls(ValueKind.TEXT, value)

    @classmethod
    def integer(cls, value: int) -> "TypedValue":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Integer value must be int, got {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"Integer {value} does not fit in 64 bits")
        return cls(ValueKind.INTEGER, value)

    @classmethod
    def float_(cls, value: float) -> "TypedValue":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Float value must be float, got {type(value).__name__}")
        return cls(ValueKind.FLOAT, float(value))

    @classmethod
    def boolean(cls, value: bool) -> "TypedValue":
        if not isinstance(value, bool):
            raise TypeError(f"Boolean value must be bool, got {type(value).__name__}")
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def infer(cls, raw: str) -> "TypedValue":
        """
        Infer the variant of an assignment's right hand side.

        The order matters: "1" (quoted) is text, 1 is an integer,
        1.0 is a float, true/false are booleans, anything else is text.
        """
        if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"'):
            return cls(ValueKind.TEXT, raw[1:-1])

        if _INTEGER_RE.fullmatch(raw):
            number = int(raw)
            if INT64_MIN <= number <= INT64_MAX:
                return cls(ValueKind.INTEGER, number)

        if _FLOAT_RE.fullmatch(raw):
            return cls(ValueKind.FLOAT, float(raw))

        if raw in ("true", "false"):
            return cls(ValueKind.BOOLEAN, raw == "true")

        return cls(ValueKind.TEXT, raw)

    def as_text(self) -> str | None:
        return self.value if self.kind is ValueKind.TEXT else None

    def as_integer(self) -> int | None:
        return self.value if self.kind is ValueKind.INTEGER else None

    def as_float(self) -> float | None:
        return self.value if self.kind is ValueKind.FLOAT else None

    def as_boolean(self) -> bool | None:
        return self.value if self.kind is ValueKind.BOOLEAN else None

    def as_bool_literal(self) -> bool | None:
        """Text holding "true"/"false" in any case, as a bool"""
        if self.kind is not ValueKind.TEXT:
            return None
        lowered = self.value.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return None

    def same_kind(self, other: "TypedValue") -> bool:
        return self.kind is other.kind

    def to_ini(self) -> str:
        """Right hand side as written to the file"""
        if self.kind is ValueKind.TEXT:
            return f'"{self.value}"'
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.kind is ValueKind.FLOAT:
            # repr keeps a '.' or exponent so the value reads back as a float
            return repr(self.value)
        return str(self.value)


class IniSection:
    """A named group of typed key/value pairs"""

    def __init__(self, name: str, keys: dict[str, TypedValue] | None = None):
        self.name = name
        self._keys: dict[str, TypedValue] = dict(keys or {})

    def get(self, key: str) -> TypedValue | None:
        return self._keys.get(key)

    def set(self, key: str, value: TypedValue) -> None:
        """
        Overwrite an existing key.

        Raises:
            MissingKeyError: key is not already present
            TypeMismatchError: value variant differs from the stored one
        """
        current = self._keys.get(key)
        if current is None:
            raise MissingKeyError(self.name, key)
        if not current.same_kind(value):
            raise TypeMismatchError(self.name, key, current.kind.value, value.kind.value)
        self._keys[key] = value

    def retype(self, key: str, value: TypedValue) -> None:
        """Overwrite an existing key, allowing its variant to change"""
        if key not in self._keys:
            raise MissingKeyError(self.name, key)
        self._keys[key] = value

    def create_or_set(self, key: str, value: TypedValue) -> None:
        self._keys[key] = value

    def keys(self) -> list[str]:
        return list(self._keys)

    def items(self) -> list[tuple[str, TypedValue]]:
        return list(self._keys.items())

    def copy(self) -> "IniSection":
        return IniSection(self.name, self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IniSection):
            return NotImplemented
        return self.name == other.name and self._keys == other._keys

    def __repr__(self) -> str:
        return f"IniSection({self.name!r}, {self._keys!r})"


class IniStore:
    """All sections of one backing file, plus the path they are written to"""

    def __init__(self, path: str | Path, sections: dict[str, IniSection] | None = None):
        self.path = Path(path)
        self._sections: dict[str, IniSection] = dict(sections or {})

    # Section granularity

    def get(self, section: str) -> IniSection | None:
        return self._sections.get(section)

    def set(self, section: IniSection) -> None:
        """Add a new section; raises DuplicateSectionError if the name is taken"""
        if section.name in self._sections:
            raise DuplicateSectionError(section.name)
        self._sections[section.name] = section

    def create_or_set(self, section: IniSection) -> None:
        """Add or wholesale replace a section"""
        self._sections[section.name] = section

    def sections(self) -> list[IniSection]:
        return list(self._sections.values())

    # Key granularity

    def get_value(self, section: str, key: str) -> TypedValue:
        found = self._sections.get(section)
        if found is None:
            raise MissingSectionError(section)
        value = found.get(key)
        if value is None:
            raise MissingKeyError(section, key)
        return value

    def set_value(self, section: str, key: str, value: TypedValue) -> None:
        found = self._sections.get(section)
        if found is None:
            raise MissingSectionError(section)
        found.set(key, value)

    def create_or_set_value(self, section: str, key: str, value: TypedValue) -> None:
        """Set a key, creating it (but never the section) when absent"""
        found = self._sections.get(section)
        if found is None:
            raise MissingSectionError(section)
        found.create_or_set(key, value)

    def copy(self) -> "IniStore":
        """Independent copy for transactional edits"""
        return IniStore(
            self.path,
            {name: section.copy() for name, section in self._sections.items()},
        )

    def to_dict(self) -> dict[str, dict[str, TypedValue]]:
        return {
            name: dict(section.items())
            for name, section in self._sections.items()
        }

    def save(self) -> None:
        write_ini(self)

    def __contains__(self, section: object) -> bool:
        return section in self._sections

    def __len__(self) -> int:
        return len(self._sections)

    def __repr__(self) -> str:
        return f"IniStore({str(self.path)!r}, sections={list(self._sections)!r})"


def parse_ini(text: str, path: str | Path = "") -> IniStore:
    """
    Parse INI text into a store.

    Lines end at LF or CRLF. Lines that are neither a [section] header
    nor contain '=' are ignored.
    A repeated header starts the section over (last one wins).

    Raises:
        NoCurrentSectionError: assignment before the first header
    """
    sections: dict[str, IniSection] = {}
    current: IniSection | None = None

    # Values may contain \x0c, \x85, \u2028 etc.; only LF ends a line
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.removesuffix("\r").strip()

        if line.startswith("[") and line.endswith("]"):
            current = IniSection(line[1:-1])
            sections[current.name] = current
            continue

        if "=" not in line:
            continue

        # Split on the first '=' only; encoded values may contain more
        key, _, raw_value = line.partition("=")
        key = key.strip()
        raw_value = raw_value.strip()

        if current is None:
            raise NoCurrentSectionError(line_number, key)

        current.create_or_set(key, TypedValue.infer(raw_value))

    return IniStore(path, sections)


def read_ini(path: str | Path) -> IniStore:
    """
    Read and parse a backing file.

    Raises:
        StoreReadError: file cannot be opened or read
        ParseError: file is not UTF-8 or has no current section for a key
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise ParseError(f"{path} is not valid UTF-8: {e}")
    except OSError as e:
        raise StoreReadError(f"Cannot read {path}: {e}", path=str(path))

    store = parse_ini(text, path)
    logger.debug(
        f"Loaded {path} ({len(store)} sections)",
        extra={"path": str(path), "sections": len(store)},
    )
    return store


def read_ini_field(path: str | Path, section: str, key: str) -> TypedValue:
    """Read one value from a backing file"""
    return read_ini(path).get_value(section, key)


def serialize_ini(store: IniStore) -> str:
    """Render every section and key; a blank line closes each section"""
    lines: list[str] = []
    for section in store.sections():
        lines.append(f"[{section.name}]")
        for key, value in section.items():
            lines.append(f"{key} = {value.to_ini()}")
        lines.append("")
    return "\n".join(lines) + ("\n" if lines else "")


def write_ini(store: IniStore, path: str | Path | None = None) -> None:
    """
    Rewrite the backing file in full.

    The text goes to a sibling temp file which then replaces the target,
    so readers see either the old file or the new one. The target's
    permission bits carry over to the new file.

    Raises:
        WriteError: any I/O failure; the original file is left untouched
    """
    target = Path(path) if path is not None else store.path
    temp_path = target.with_name(target.name + ".tmp")
    text = serialize_ini(store)

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if target.exists():
            os.chmod(temp_path, stat.S_IMODE(target.stat().st_mode))
        temp_path.replace(target)
    except OSError as e:
        try:
            temp_path.unlink()
        except OSError:
            pass
        raise WriteError(f"Cannot write {target}: {e}", path=str(target))

    logger.debug(
        f"Wrote {target} ({len(store)} sections)",
        extra={"path": str(target), "sections": len(store)},
    )
