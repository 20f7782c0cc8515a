"""
Vendor Config Facade

Maps the externally visible configuration fields onto (section, key)
pairs of the vendor INI file, and owns the single live store for that
file.

Update flow:
1. Validate every incoming field (name known, JSON type matches)
2. Apply the fields to a working copy of the store
3. Rewrite the file once from the working copy
4. Swap the working copy in as the live store

A failure at any step leaves both the live store and the file as they
were, so readers never see part of a batch.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

from sysagent.common.exceptions import (
    BadRequestError,
    MissingKeyError,
    MissingSectionError,
    SystemControlError,
    TypeMismatchError,
)
from sysagent.common.logging_setup import get_service_logger, log_field_update

from .codec import decode_comment, encode_comment
from .store import IniSection, IniStore, TypedValue, ValueKind, read_ini, write_ini

logger = get_service_logger("vendor_config.facade")

SYSTEM_SETTINGS_SECTION = "systemsettings"
DEFAULT_SUBNET_MASK = "255.255.255.0"


class FieldKind(str, Enum):
    """How a field is represented at rest"""
    BOOLEAN = "boolean"            # native true/false, or text "True"/"False" if the key holds text
    BOOL_STRING = "bool_string"    # text "True"/"False"
    TEXT = "text"                  # plain text
    ENCODED_TEXT = "encoded_text"  # text packed with the comment codec


@dataclass(frozen=True)
class FieldSpec:
    """One externally addressable field"""
    name: str
    section: str
    key: str
    kind: FieldKind
    mirrors_hostname: bool = False

    @property
    def expects_bool(self) -> bool:
        return self.kind in (FieldKind.BOOLEAN, FieldKind.BOOL_STRING)


FIELDS: dict[str, FieldSpec] = {
    spec.name: spec
    for spec in (
        FieldSpec("no_fpga_app", SYSTEM_SETTINGS_SECTION, "NoFPGAApp.enabled", FieldKind.BOOLEAN),
        FieldSpec("console_out", SYSTEM_SETTINGS_SECTION, "ConsoleOut.enabled", FieldKind.BOOLEAN),
        FieldSpec("no_app", SYSTEM_SETTINGS_SECTION, "NoApp.enabled", FieldKind.BOOL_STRING),
        FieldSpec("safe_mode", SYSTEM_SETTINGS_SECTION, "SafeMode.enabled", FieldKind.BOOL_STRING),
        FieldSpec("host_name", SYSTEM_SETTINGS_SECTION, "host_name", FieldKind.TEXT, mirrors_hostname=True),
        FieldSpec("comment", SYSTEM_SETTINGS_SECTION, "Comment", FieldKind.ENCODED_TEXT),
    )
}


def bool_to_text(value: bool) -> str:
    return "True" if value else "False"


class VendorConfigHandle:
    """
    Owner of the live store for one backing file.

    All access goes through read() or edit(), which hold the same lock,
    so at most one reader or writer touches the store at a time.
    """

    def __init__(self, store: IniStore):
        self._store = store
        self._lock = threading.RLock()

    @classmethod
    def open(cls, path: str | Path) -> "VendorConfigHandle":
        return cls(read_ini(path))

    @property
    def path(self) -> Path:
        return self._store.path

    def reload(self) -> None:
        """Re-read the backing file, replacing the live store"""
        with self._lock:
            self._store = read_ini(self._store.path)
            logger.info(f"Reloaded {self._store.path}")

    @contextmanager
    def read(self) -> Iterator[IniStore]:
        """Locked view of the live store. Do not mutate it."""
        with self._lock:
            yield self._store

    @contextmanager
    def edit(self) -> Iterator[IniStore]:
        """
        Locked working copy of the live store.

        On a clean exit the copy is written to disk and becomes the live
        store. If the block raises, or the write fails, the copy is
        dropped and the exception propagates.
        """
        with self._lock:
            working = self._store.copy()
            yield working
            write_ini(working)
            self._store = working


class ConfigFacade:
    """Semantic read/update layer over the vendor INI store"""

    def __init__(
        self,
        handle: VendorConfigHandle,
        hostname_writer: Callable[[str], None],
        fields: Mapping[str, FieldSpec] | None = None,
    ):
        self.handle = handle
        self.hostname_writer = hostname_writer
        self.fields = dict(fields if fields is not None else FIELDS)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def read_snapshot(self) -> dict[str, Any]:
        """
        Current value of every field.

        Raises:
            MissingSectionError / MissingKeyError: backing entry absent
            TypeMismatchError: stored variant does not fit the field
            CodecError: comment is not valid codec output
        """
        snapshot: dict[str, Any] = {}
        with self.handle.read() as store:
            for spec in self.fields.values():
                snapshot[spec.name] = self._read_field(store, spec)
        return snapshot

    def _read_field(self, store: IniStore, spec: FieldSpec) -> Any:
        section = store.get(spec.section)
        if section is None:
            raise MissingSectionError(spec.section, field=spec.name)

        value = section.get(spec.key)
        if value is None:
            raise MissingKeyError(spec.section, spec.key, field=spec.name)

        if spec.kind is FieldKind.BOOLEAN:
            result = value.as_boolean()
            if result is None:
                result = value.as_bool_literal()
            expected = "boolean or text 'True'/'False'"
        elif spec.kind is FieldKind.BOOL_STRING:
            result = value.as_bool_literal()
            expected = "text 'True'/'False'"
        else:
            result = value.as_text()
            expected = "text"

        if result is None:
            raise TypeMismatchError(
                spec.section, spec.key, expected, value.kind.value, field=spec.name,
            )

        if spec.kind is FieldKind.ENCODED_TEXT:
            return decode_comment(result)
        return result

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def apply_updates(self, updates: Mapping[str, Any]) -> None:
        """
        Apply a batch of field updates and persist once.

        Raises:
            BadRequestError: unknown field or wrong value type (nothing applied)
            SystemControlError: hostname file write failed (nothing persisted)
            MissingSectionError / MissingKeyError / TypeMismatchError:
                target entry absent or of another variant (nothing persisted)
            WriteError: file rewrite failed (nothing persisted, safe to retry)
        """
        validated = [
            (self._resolve(name), self._coerce(name, value))
            for name, value in updates.items()
        ]
        if not validated:
            return

        # Fields with side effects go last so plain fields that fail do
        # not leave the live system changed
        validated.sort(key=lambda item: item[0].mirrors_hostname)

        with self.handle.edit() as working:
            for spec, value in validated:
                if spec.mirrors_hostname:
                    self._check_target(working, spec, value)
                    try:
                        self.hostname_writer(value)
                    except SystemControlError:
                        log_field_update(logger, spec.name, value, success=False)
                        raise
                working.set_value(spec.section, spec.key, self._to_stored(working, spec, value))
                log_field_update(logger, spec.name, value)

        logger.info(
            f"Applied {len(validated)} config field(s)",
            extra={"fields": [spec.name for spec, _ in validated]},
        )

    def _resolve(self, name: str) -> FieldSpec:
        spec = self.fields.get(name)
        if spec is None:
            raise BadRequestError(f"Unknown field: {name}", field=name)
        return spec

    def _coerce(self, name: str, value: Any) -> bool | str:
        spec = self.fields[name]
        if spec.expects_bool:
            if not isinstance(value, bool):
                raise BadRequestError(
                    f"{name} must be a boolean, got {type(value).__name__}", field=name,
                )
            return value

        if not isinstance(value, str):
            raise BadRequestError(
                f"{name} must be a string, got {type(value).__name__}", field=name,
            )
        # The file format is line oriented
        if "\n" in value or "\r" in value:
            raise BadRequestError(f"{name} must not contain line breaks", field=name)
        return value

    def _to_stored(self, store: IniStore, spec: FieldSpec, value: bool | str) -> TypedValue:
        if spec.kind is FieldKind.BOOLEAN:
            # Keep the convention the key already uses
            current = store.get_value(spec.section, spec.key)
            if current.kind is ValueKind.TEXT:
                return TypedValue.text(bool_to_text(value))
            return TypedValue.boolean(value)
        if spec.kind is FieldKind.BOOL_STRING:
            return TypedValue.text(bool_to_text(value))
        if spec.kind is FieldKind.ENCODED_TEXT:
            return TypedValue.text(encode_comment(value))
        return TypedValue.text(value)

    def _check_target(self, store: IniStore, spec: FieldSpec, value: bool | str) -> None:
        """Fail before any side effect if the store set would fail"""
        current = store.get_value(spec.section, spec.key)
        stored = self._to_stored(store, spec, value)
        if not current.same_kind(stored):
            raise TypeMismatchError(
                spec.section, spec.key, stored.kind.value, current.kind.value, field=spec.name,
            )

    # ------------------------------------------------------------------
    # Network interface sections
    # ------------------------------------------------------------------

    def write_static_ip(
        self,
        ip: str,
        gateway: str,
        dns: str,
        subnet_mask: str = DEFAULT_SUBNET_MASK,
        interface: str = "eth0",
    ) -> None:
        """Replace the interface section with a static address setup"""
        section = IniSection(interface)
        section.create_or_set("dhcpenabled", TypedValue.text("0"))
        section.create_or_set("linklocalenabled", TypedValue.text("0"))
        section.create_or_set("IP_Address", TypedValue.text(ip))
        section.create_or_set("Subnet_Mask", TypedValue.text(subnet_mask))
        section.create_or_set("Gateway", TypedValue.text(gateway))
        section.create_or_set("DNS_Address", TypedValue.text(dns))
        section.create_or_set("Mode", TypedValue.text("TCPIP"))
        section.create_or_set("MediaMode", TypedValue.text("Auto"))
        self._replace_section(section)

        logger.info(
            f"Static IP {ip} written for {interface}",
            extra={"interface": interface, "ip": ip, "gateway": gateway, "dns": dns},
        )

    def write_dhcp(self, ip: str, interface: str = "eth0") -> None:
        """Replace the interface section with a DHCP setup"""
        section = IniSection(interface)
        section.create_or_set("dhcpenabled", TypedValue.text("1"))
        section.create_or_set("linklocalenabled", TypedValue.text("1"))
        section.create_or_set("Mode", TypedValue.text("TCPIP"))
        section.create_or_set("MediaMode", TypedValue.text("Auto"))
        section.create_or_set("dhcpipaddr", TypedValue.text(ip))
        self._replace_section(section)

        logger.info(
            f"DHCP written for {interface}",
            extra={"interface": interface, "ip": ip},
        )

    def _replace_section(self, section: IniSection) -> None:
        with self.handle.edit() as working:
            working.create_or_set(section)

