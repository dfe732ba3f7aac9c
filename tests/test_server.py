"""Tests for the raw echo listener."""

from __future__ import annotations

import socket
import threading

from sipprobe import EchoListener


def test_listener_prints_every_line():
    printed = []
    listener = EchoListener("127.0.0.1", 0, printer=printed.append)
    result = {}
    thread = threading.Thread(target=lambda: result.update(count=listener.serve_once()), daemon=True)
    thread.start()

    with socket.create_connection(("127.0.0.1", listener.local_port), timeout=5) as client:
        client.sendall(b"OPTIONS sip:127.0.0.1:5060 SIP/2.0\r\nMax-Forwards: 0\r\n\r\n[tail]")
    thread.join(5)

    assert printed == ["OPTIONS sip:127.0.0.1:5060 SIP/2.0", "Max-Forwards: 0", "", "[tail]"]
    assert result["count"] == 4
