"""
SDP helpers: the fixed PCMA + telephone-event offer carried by an
early-offer INVITE, and the audio port lookup on an answer body.
"""

from __future__ import annotations

import random
from typing import Optional

from ._utils import EOL

MEDIA_PORT_MIN = 1024
MEDIA_PORT_MAX = 65535  # exclusive

# payload type -> rtpmap encoding
OFFER_CODECS = {
    8: "PCMA/8000",
    101: "telephone-event/8000",
}


def random_media_port() -> int:
    """Pick an RTP port uniformly from [1024, 65535)."""
    return random.randrange(MEDIA_PORT_MIN, MEDIA_PORT_MAX)


def build_audio_sdp(host: str, port: int) -> str:
    payloads = " ".join(str(p) for p in OFFER_CODECS)
    body = [
        "v=0",
        f"o=SP 12345 12345 IN IP4 {host}",
        "s=-",
        f"c=IN IP4 {host}",
        "t=0 0",
        f"m=audio {port} RTP/AVP {payloads}",
    ]
    body.extend(f"a=rtpmap:{pt} {codec}" for pt, codec in OFFER_CODECS.items())
    body.extend(["a=fmtp:101 0-15", "a=ptime:20", "a=sendrecv"])
    return EOL.join(body) + EOL


def audio_port(body: str) -> Optional[int]:
    """
    Return the port of the first ``m=audio`` line in an SDP body.

    None when the body has no audio media line or its port is not numeric.
    """
    for line in body.splitlines():
        if not line.startswith("m=audio "):
            continue
        parts = line.split()
        if len(parts) < 2 or not parts[1].isdigit():
            return None
        return int(parts[1])
    return None


__all__ = [
    "MEDIA_PORT_MIN",
    "MEDIA_PORT_MAX",
    "OFFER_CODECS",
    "audio_port",
    "build_audio_sdp",
    "random_media_port",
]
