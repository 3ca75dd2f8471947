"""Unit tests for the script-stripping sanitizer."""

import pytest

from app.utils.sanitizer import sanitize


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("hello", "hello"),
        ("a<script>alert(1)</script>b", "ab"),
        ("<SCRIPT src='x.js'></SCRIPT>ok", "ok"),
        ("<script>1</script> mid <script>2</script>", " mid "),
        ("<b>bold</b>", "<b>bold</b>"),
        ("", ""),
    ],
)
def test_sanitize(raw: str, expected: str) -> None:
    assert sanitize(raw) == expected


def test_multiline_script_is_left_untouched() -> None:
    raw = "<script>\nalert(1)\n</script>"
    assert sanitize(raw) == raw
