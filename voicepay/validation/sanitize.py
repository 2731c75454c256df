"""Text sanitizing for transcripts before intent extraction."""

import re

_MARKUP_CHARS = re.compile(r"[<>]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")


def sanitize_input(text: str) -> str:
    """Strip surrounding whitespace, angle brackets and control characters."""
    cleaned = _MARKUP_CHARS.sub("", text.strip())
    return _CONTROL_CHARS.sub("", cleaned)
