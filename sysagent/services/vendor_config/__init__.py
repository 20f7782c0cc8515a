"""
Vendor Config - Typed INI store for the vendor configuration file

Responsibilities:
- Parse and atomically rewrite the vendor INI file
- Pack free text comments into the vendor's restricted alphabet
- Map external config fields onto typed (section, key) entries
"""

from .codec import decode_comment, encode_comment
from .facade import FIELDS, ConfigFacade, FieldKind, FieldSpec, VendorConfigHandle
from .store import (
    IniSection,
    IniStore,
    TypedValue,
    ValueKind,
    parse_ini,
    read_ini,
    read_ini_field,
    serialize_ini,
    write_ini,
)

__all__ = [
    "ConfigFacade",
    "FIELDS",
    "FieldKind",
    "FieldSpec",
    "IniSection",
    "IniStore",
    "TypedValue",
    "ValueKind",
    "VendorConfigHandle",
    "decode_comment",
    "encode_comment",
    "parse_ini",
    "read_ini",
    "read_ini_field",
    "serialize_ini",
    "write_ini",
]
