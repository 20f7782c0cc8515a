"""Tests for the typed INI store: inference, accessors, persistence."""

import math
import stat

import pytest

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
from sysagent.services.vendor_config.store import (
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

EXAMPLE = """[Default]
Port = 80
SSLEnabled = false

[Hosts]
Default = "Default Host"
"""


def test_example_file_values():
    store = parse_ini(EXAMPLE)

    assert store.get_value("Default", "Port") == TypedValue.integer(80)
    assert store.get_value("Default", "SSLEnabled") == TypedValue.boolean(False)
    assert store.get_value("Hosts", "Default") == TypedValue.text("Default Host")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("123", TypedValue(ValueKind.INTEGER, 123)),
        ("-42", TypedValue(ValueKind.INTEGER, -42)),
        ('"123"', TypedValue(ValueKind.TEXT, "123")),
        ("1.5", TypedValue(ValueKind.FLOAT, 1.5)),
        ("1e3", TypedValue(ValueKind.FLOAT, 1000.0)),
        ("true", TypedValue(ValueKind.BOOLEAN, True)),
        ("false", TypedValue(ValueKind.BOOLEAN, False)),
        ("True", TypedValue(ValueKind.TEXT, "True")),
        ("hello", TypedValue(ValueKind.TEXT, "hello")),
        ('""', TypedValue(ValueKind.TEXT, "")),
        ("9223372036854775808", TypedValue(ValueKind.FLOAT, 9223372036854775808.0)),
        ("1_000", TypedValue(ValueKind.TEXT, "1_000")),
    ],
)
def test_type_inference(raw, expected):
    assert TypedValue.infer(raw) == expected


def test_quoted_and_unquoted_differ():
    store = parse_ini('[s]\na = "1"\nb = 1\n')

    assert store.get_value("s", "a").kind is ValueKind.TEXT
    assert store.get_value("s", "b").kind is ValueKind.INTEGER
    assert store.get_value("s", "a") != store.get_value("s", "b")


def test_bool_is_not_an_integer():
    with pytest.raises(TypeError):
        TypedValue.integer(True)
    with pytest.raises(ValueError):
        TypedValue.integer(2 ** 63)


def test_bool_literal_is_case_insensitive_text_only():
    assert TypedValue.text("TRUE").as_bool_literal() is True
    assert TypedValue.text("False").as_bool_literal() is False
    assert TypedValue.text("yes").as_bool_literal() is None
    assert TypedValue.boolean(True).as_bool_literal() is None


def test_strict_accessors():
    value = TypedValue.integer(5)
    assert value.as_integer() == 5
    assert value.as_text() is None
    assert value.as_float() is None
    assert value.as_boolean() is None


def test_value_with_equals_signs_keeps_everything_after_first():
    store = parse_ini('[s]\nComment = "=4:5"\n')
    assert store.get_value("s", "Comment") == TypedValue.text("=4:5")


def test_ignores_stray_lines_and_handles_crlf():
    store = parse_ini("[s]\r\n; a comment\r\nnot an assignment\r\n\r\nk = 1\r\n")

    assert store.get("s").keys() == ["k"]
    assert store.get_value("s", "k") == TypedValue.integer(1)


def test_only_lf_and_crlf_end_lines():
    store = parse_ini('[s]\r\na = "x\x0by\x0cz\x1c\x85w"\r\nb = "p\u2028q\u2029r"\n')

    assert store.get_value("s", "a") == TypedValue.text("x\x0by\x0cz\x1c\x85w")
    assert store.get_value("s", "b") == TypedValue.text("p\u2028q\u2029r")


def test_repeated_section_last_wins():
    store = parse_ini("[s]\na = 1\n[s]\nb = 2\n")

    section = store.get("s")
    assert "a" not in section
    assert section.get("b") == TypedValue.integer(2)


def test_assignment_before_section_fails_cleanly():
    with pytest.raises(NoCurrentSectionError) as exc_info:
        parse_ini("\norphan = 1\n[s]\n")

    assert exc_info.value.line_number == 2
    assert exc_info.value.key == "orphan"
    assert isinstance(exc_info.value, ParseError)


def test_set_requires_existing_key():
    store = parse_ini(EXAMPLE)

    with pytest.raises(MissingKeyError):
        store.set_value("Default", "NoSuchKey", TypedValue.text("x"))
    with pytest.raises(MissingSectionError):
        store.set_value("Nope", "Port", TypedValue.integer(1))


def test_set_refuses_variant_change_but_retype_allows_it():
    store = parse_ini(EXAMPLE)
    section = store.get("Default")

    with pytest.raises(TypeMismatchError) as exc_info:
        section.set("Port", TypedValue.text("80"))
    assert exc_info.value.expected == "integer"
    assert exc_info.value.actual == "text"

    section.set("Port", TypedValue.integer(8080))
    assert section.get("Port") == TypedValue.integer(8080)

    section.retype("Port", TypedValue.text("eighty"))
    assert section.get("Port") == TypedValue.text("eighty")


def test_create_or_set_adds_keys_but_not_sections():
    store = parse_ini(EXAMPLE)

    store.create_or_set_value("Default", "NewKey", TypedValue.float_(2.5))
    assert store.get_value("Default", "NewKey") == TypedValue.float_(2.5)

    with pytest.raises(MissingSectionError):
        store.create_or_set_value("Nope", "k", TypedValue.integer(1))


def test_section_set_and_create_or_set():
    store = parse_ini(EXAMPLE)

    with pytest.raises(DuplicateSectionError):
        store.set(IniSection("Hosts"))

    store.set(IniSection("New", {"a": TypedValue.integer(1)}))
    assert store.get_value("New", "a") == TypedValue.integer(1)

    store.create_or_set(IniSection("Hosts", {"Other": TypedValue.text("o")}))
    assert store.get("Hosts").keys() == ["Other"]


def test_copy_is_independent():
    store = parse_ini(EXAMPLE)
    working = store.copy()

    working.set_value("Default", "Port", TypedValue.integer(1))
    working.create_or_set(IniSection("Extra"))

    assert store.get_value("Default", "Port") == TypedValue.integer(80)
    assert "Extra" not in store


def test_serialize_format():
    store = IniStore("x.ini")
    store.set(IniSection("s", {
        "t": TypedValue.text("a b"),
        "i": TypedValue.integer(3),
        "f": TypedValue.float_(4.5),
        "b": TypedValue.boolean(True),
    }))

    assert serialize_ini(store) == '[s]\nt = "a b"\ni = 3\nf = 4.5\nb = true\n\n'


def test_round_trip_preserves_every_value():
    store = parse_ini(EXAMPLE)
    store.create_or_set_value("Default", "Ratio", TypedValue.float_(1.0))
    store.create_or_set_value("Default", "Big", TypedValue.float_(1e20))
    store.create_or_set_value("Default", "Neg", TypedValue.integer(-(2 ** 63)))
    store.create_or_set_value("Hosts", "Quoted", TypedValue.text("42"))

    reparsed = parse_ini(serialize_ini(store))

    assert reparsed.to_dict() == store.to_dict()


def test_nan_round_trips_as_float():
    store = parse_ini("[s]\nx = nan\n")
    reparsed = parse_ini(serialize_ini(store))

    value = reparsed.get_value("s", "x")
    assert value.kind is ValueKind.FLOAT
    assert math.isnan(value.value)


def test_read_and_write_file(tmp_path):
    path = tmp_path / "test.ini"
    path.write_text(EXAMPLE, encoding="utf-8")

    store = read_ini(path)
    store.set_value("Default", "Port", TypedValue.integer(8080))
    store.save()

    assert read_ini_field(path, "Default", "Port") == TypedValue.integer(8080)
    assert read_ini_field(path, "Hosts", "Default") == TypedValue.text("Default Host")
    assert not (tmp_path / "test.ini.tmp").exists()


def test_write_keeps_file_mode(tmp_path):
    path = tmp_path / "test.ini"
    path.write_text(EXAMPLE, encoding="utf-8")
    path.chmod(0o640)

    store = read_ini(path)
    store.set_value("Default", "Port", TypedValue.integer(8080))
    store.save()

    assert stat.S_IMODE(path.stat().st_mode) == 0o640


def test_read_missing_file(tmp_path):
    with pytest.raises(StoreReadError):
        read_ini(tmp_path / "missing.ini")


def test_read_field_missing_entries(tmp_path):
    path = tmp_path / "test.ini"
    path.write_text(EXAMPLE, encoding="utf-8")

    with pytest.raises(MissingSectionError):
        read_ini_field(path, "Nope", "Port")
    with pytest.raises(MissingKeyError):
        read_ini_field(path, "Default", "Nope")


def test_failed_write_leaves_original_untouched(tmp_path):
    path = tmp_path / "test.ini"
    path.write_text(EXAMPLE, encoding="utf-8")
    store = read_ini(path)
    store.set_value("Default", "Port", TypedValue.integer(1))

    # Replacing a directory fails after the temp file is written
    blocked = tmp_path / "blocked.ini"
    blocked.mkdir()

    with pytest.raises(WriteError):
        write_ini(store, blocked)

    assert not (tmp_path / "blocked.ini.tmp").exists()
    assert path.read_text(encoding="utf-8") == EXAMPLE


def test_write_into_missing_directory(tmp_path):
    store = IniStore(tmp_path / "nope" / "test.ini")
    with pytest.raises(WriteError) as exc_info:
        store.save()
    assert exc_info.value.retry_safe is True
