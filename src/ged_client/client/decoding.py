"""
Response body decoding helpers.

The GED service sometimes returns JSON whose non-ASCII characters were
escaped twice upstream (``\\\\u00e9`` in the body instead of ``\\u00e9``),
leaving literal escape sequences in the decoded strings, and occasionally
embeds NUL bytes. Bodies are repaired before being parsed: both single and
double escapes become the character itself.
"""

import json
import re
from typing import Any, Optional

# Escaped backslash pairs ahead of an escape are captured and kept as-is
_ESCAPE_START = r"(?<!\\)((?:\\\\)*)\\{1,2}u"

_UNICODE_ESCAPE = re.compile(
    _ESCAPE_START + r"([dD][89abAB][0-9a-fA-F]{2})\\{1,2}u([dD][c-fC-F][0-9a-fA-F]{2})"
    r"|" + _ESCAPE_START + r"([0-9a-fA-F]{4})"
)

_CONTENT_DISPOSITION_FILENAME = re.compile(r"\s*filename\s?=\s?(.*)")


def _replace_escape(match: re.Match) -> str:
    if match.group(2):
        high = int(match.group(2), 16)
        low = int(match.group(3), 16)
        return match.group(1) + chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))

    prefix = match.group(4)
    code = int(match.group(5), 16)
    if 0xD800 <= code <= 0xDFFF:
        # Lone surrogate: not representable, leave it to the JSON parser
        return match.group(0)

    char = chr(code)
    if char in ('"', "\\"):
        # Must stay escaped to keep the JSON string well-formed
        return prefix + "\\" + char
    return prefix + char


def repair_body(text: str) -> str:
    """Convert literal ``\\uXXXX`` escapes to characters and strip NUL bytes."""
    repaired = _UNICODE_ESCAPE.sub(_replace_escape, text)
    return repaired.replace("\x00", "")


def decode_json_body(text: str) -> Any:
    """
    Repair and parse a response body.

    An empty body decodes to an empty mapping.

    Raises:
        ValueError: If the repaired body is not valid JSON
    """
    repaired = repair_body(text)
    if not repaired.strip():
        return {}
    # strict=False: repaired escapes may leave raw control characters in strings
    return json.loads(repaired, strict=False)


def parse_content_disposition(header: Optional[str]) -> Optional[str]:
    """Extract the filename from a Content-Disposition header value."""
    if not header:
        return None

    match = _CONTENT_DISPOSITION_FILENAME.search(header)
    if not match:
        return None

    filename = match.group(1).replace('"', "").strip()
    return filename or None
