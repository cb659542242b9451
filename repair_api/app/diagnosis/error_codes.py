"""Appliance fault-code detection.

Manufacturers print codes in several shapes (``E13``, ``F-05``, ``LE1``,
occasionally ``13E``).  Detection is a fixed, ordered list of patterns so the
same description always yields the same code.
"""

from __future__ import annotations

import re
from typing import Optional, Pattern, Tuple

# Prefixed forms first, then bare letter-digit, then the reversed digit-letter
# form.  Order matters: the first pattern that matches anywhere wins.
ERROR_CODE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\berror\s*code\s*[:#]?\s*[a-z]{0,2}\s?-?\s?\d{1,3}\b"),
    re.compile(r"\bcode\s*[:#]?\s*[a-z]{1,2}\s?-?\s?\d{1,3}\b"),
    re.compile(r"\berror\s*[:#]?\s*[a-z]{1,2}-?\d{1,3}\b"),
    re.compile(r"\b[a-z]?[ef]-?\d{1,3}\b"),
    re.compile(r"\b\d{1,3}-?[ef]\b"),
)

_PREFIX_RE = re.compile(r"^(?:error\s*code|code|error)\s*[:#]?")
_REVERSED_RE = re.compile(r"^(\d+)([EF])$")

# Used on generated text, not user input: only uppercase tokens count.
_CODE_TOKEN_RE = re.compile(r"\b(?:[A-Z]?[EF]-?\d{1,3}|\d{1,3}[EF])\b")


def detect_error_code(text: Optional[str]) -> Optional[str]:
    """Return the canonical error code mentioned in *text*, or ``None``.

    >>> detect_error_code("Showing error code e-13 after spin")
    'E13'
    >>> detect_error_code("display flashes 13E")
    'E13'
    """
    if not text:
        return None

    lowered = text.lower()
    for pattern in ERROR_CODE_PATTERNS:
        match = pattern.search(lowered)
        if match is None:
            continue
        code = _PREFIX_RE.sub("", match.group(0))
        code = re.sub(r"[\s\-]", "", code).upper()
        if not code or not any(ch.isdigit() for ch in code):
            continue
        reversed_match = _REVERSED_RE.match(code)
        if reversed_match:
            code = reversed_match.group(2) + reversed_match.group(1)
        return code
    return None


def mentions_error_code(text: str) -> bool:
    """True if *text* talks about an error code or contains a code token."""
    if "error code" in text.lower():
        return True
    return bool(_CODE_TOKEN_RE.search(text))
