"""Utilities and constants for the SIP probe."""

from __future__ import annotations

import logging

from rich.console import Console

# Rich Console for operator output
console = Console()

# Get logger for the package
logger = logging.getLogger("sipprobe")

EOL = "\r\n"
SCHEME = "SIP"
VERSION = "2.0"
BRANCH = "z9hG4bK"

PLAIN_PORT = 5060
TLS_PORT = 5061

# Fixed local identity used in every request
LOCAL_USER = "99999"
USER_AGENT = "SIP Probe"
INVITE_FROM_TAG = "456"
OPTIONS_FROM_TAG = "5678"
VIA_BRANCH = f"{BRANCH}1234"

ALLOW_METHODS = (
    "INVITE",
    "ACK",
    "BYE",
    "CANCEL",
    "OPTIONS",
    "INFO",
    "MESSAGE",
    "SUBSCRIBE",
    "NOTIFY",
    "PRACK",
    "UPDATE",
    "REFER",
)

# Compact header forms (RFC 3261 Section 7.3.3) -> lowercase name
HEADERS_COMPACT = {
    "v": "via",
    "f": "from",
    "t": "to",
    "m": "contact",
    "i": "call-id",
    "e": "content-encoding",
    "l": "content-length",
    "c": "content-type",
    "s": "subject",
    "k": "supported",
}

# Lowercase name -> canonical form for names that are not plain Title-Case
HEADERS = {
    "call-id": "Call-ID",
    "cseq": "CSeq",
    "www-authenticate": "WWW-Authenticate",
    "p-asserted-identity": "P-Asserted-Identity",
    "mime-version": "MIME-Version",
}


class ConsoleEcho:
    """Echo wire traffic to the operator console."""

    def __init__(self, target: Console | None = None) -> None:
        self.console = target or console

    def sent(self, text: str) -> None:
        self.console.print("[bold cyan]>>> Client:[/bold cyan]")
        self.console.print(text, markup=False, highlight=False)

    def received(self, line: str) -> None:
        self.console.print(f"Server: {line}", markup=False, highlight=False)
