"""
Tokenizing parser for SIP response lines.

The transaction engine consumes the response one line at a time, so parsing
works on single lines: a status line or a ``Name: value;param=x`` header
field. Header names are normalized (case-insensitive, compact forms
expanded) and parameters are split off outside of any ``<...>`` URI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from ._utils import HEADERS, HEADERS_COMPACT, SCHEME, VERSION

SIP_VERSION = f"{SCHEME}/{VERSION}"


def _canonical(name: str) -> str:
    """
    Convert header name to canonical form.

    Examples:
    - 'l' -> 'Content-Length' (compact form)
    - 'call-id' -> 'Call-ID' (mapped header)
    - 'TO' -> 'To' (Title-Case fallback)
    """
    lower = name.strip().lower()
    if len(lower) == 1 and lower in HEADERS_COMPACT:
        lower = HEADERS_COMPACT[lower]
    if lower in HEADERS:
        return HEADERS[lower]
    return "-".join(part.capitalize() for part in lower.split("-"))


@dataclass(frozen=True, slots=True)
class StatusLine:
    version: str
    status_code: int
    reason: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_provisional(self) -> bool:
        return 100 <= self.status_code < 200

    @property
    def is_final(self) -> bool:
        return self.status_code >= 200


@dataclass(frozen=True, slots=True)
class HeaderField:
    name: str
    value: str
    params: Dict[str, str] = field(default_factory=dict)

    def is_named(self, name: str) -> bool:
        return self.name == _canonical(name)


def parse_status_line(line: str) -> Optional[StatusLine]:
    """
    Parse a SIP status line.

    Returns None when the line is not a status line, so callers can feed
    every received line through it.

    Example:
        >>> parse_status_line("SIP/2.0 200 OK")
        StatusLine(version='SIP/2.0', status_code=200, reason='OK')
    """
    text = line.strip()
    if not text.upper().startswith(f"{SIP_VERSION} "):
        return None
    parts = text.split(" ", 2)
    if len(parts) < 2 or not parts[1].isdigit() or len(parts[1]) != 3:
        return None
    reason = parts[2].strip() if len(parts) > 2 else ""
    return StatusLine(version=parts[0], status_code=int(parts[1]), reason=reason)


def _split_params(value: str) -> tuple[str, str]:
    """Split a header value into (main value, raw parameter string)."""
    # Parameters inside <...> belong to the URI, not to the header
    depth = 0
    quoted = False
    for index, char in enumerate(value):
        if char == '"':
            quoted = not quoted
        elif quoted:
            continue
        elif char == "<":
            depth += 1
        elif char == ">":
            depth = max(0, depth - 1)
        elif char == ";" and depth == 0:
            return value[:index].strip(), value[index + 1 :]
    return value.strip(), ""


def header_params(raw: str) -> Dict[str, str]:
    """Parse ``a=1;b;c=2`` into a dict, keeping the first value of a name."""
    params: Dict[str, str] = {}
    for part in raw.split(";"):
        part = part.strip()
        if not part:
            continue
        if "=" in part:
            key, val = part.split("=", 1)
            params.setdefault(key.strip().lower(), val.strip().strip('"'))
        else:
            params.setdefault(part.lower(), "")
    return params


def parse_header_line(line: str) -> Optional[HeaderField]:
    """
    Parse a single ``Name: value`` header line.

    Returns None for lines that are not header fields (blank lines, status
    lines, body content without a colon).

    Example:
        >>> parse_header_line("To: <sip:1@192.0.2.10>;tag=9988").params
        {'tag': '9988'}
    """
    text = line.strip()
    if not text or ":" not in text:
        return None
    name, _, value = text.partition(":")
    if not name or " " in name.strip() or "=" in name:
        return None
    main, raw_params = _split_params(value.strip())
    return HeaderField(
        name=_canonical(name),
        value=main,
        params=header_params(raw_params),
    )


__all__ = [
    "SIP_VERSION",
    "StatusLine",
    "HeaderField",
    "header_params",
    "parse_header_line",
    "parse_status_line",
]
