import re

import pytest

from utils.session_utils import extract_session_id, generate_upload_name, remove_path
from utils.validation_utils import mask_phone_number, normalize_phone_number, validate_phone_number


@pytest.mark.parametrize("raw,expected", [
    ("919876543210", "919876543210"),
    ("+91 98765-43210", "919876543210"),
    ("(44) 7700.900123", "447700900123"),
    ("abc", ""),
    ("", ""),
    (None, ""),
])
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected


def test_validate_phone_number():
    assert validate_phone_number("+1 555 0100")
    assert not validate_phone_number("+-")
    assert not validate_phone_number(None)


def test_mask_phone_number():
    assert mask_phone_number("919876543210") == "********3210"
    assert mask_phone_number("123") == "123"
    assert mask_phone_number("") == ""


def test_generate_upload_name_format():
    names = {generate_upload_name() for _ in range(20)}
    for name in names:
        assert re.fullmatch(r"[A-Za-z0-9]{6}\d{1,4}\.json", name)
    assert len(names) > 1


def test_generate_upload_name_extension():
    assert generate_upload_name(".db").endswith(".db")
    assert "." not in generate_upload_name("")


def test_extract_session_id():
    assert extract_session_id("https://files.example.com/file/aBc123.db", "https://files.example.com/file") == "aBc123.db"
    assert extract_session_id("https://files.example.com/file/aBc123.db", "https://files.example.com/file/") == "aBc123.db"
    assert extract_session_id("https://other.host/aBc123.db", "https://files.example.com/file") == "https://other.host/aBc123.db"
    assert extract_session_id("memory://storage/x.db", None) == "memory://storage/x.db"


def test_remove_path(tmp_path):
    session_dir = tmp_path / "919876543210"
    session_dir.mkdir()
    (session_dir / "creds.db").write_bytes(b"x")

    assert remove_path(session_dir) is True
    assert not session_dir.exists()
    assert remove_path(session_dir) is False

    single = tmp_path / "creds.json"
    single.write_text("{}")
    assert remove_path(single) is True
    assert not single.exists()
