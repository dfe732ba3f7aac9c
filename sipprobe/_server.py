"""
Raw echo listener.

Accepts a single TCP connection and prints every line the peer sends until
it closes. Useful as a stand-in target when checking what the probe writes.
"""

from __future__ import annotations

import socket
from typing import Callable, Optional

from ._types import ConnectionError, ReadError
from ._utils import PLAIN_PORT, console, logger


class EchoListener:
    """
    Single-shot TCP listener that prints whatever it receives.

    The socket is bound on construction, so ``local_port`` is known before
    :meth:`serve_once` blocks in ``accept``.
    """

    def __init__(
        self,
        local_host: str = "0.0.0.0",
        local_port: int = PLAIN_PORT,
        printer: Optional[Callable[[str], None]] = None,
    ) -> None:
        """
        Bind the listening socket.

        Args:
            local_host: Local IP to bind to
            local_port: Local port to bind to (0 picks a free port)
            printer: Called with each received line (defaults to the console)

        Raises:
            ConnectionError: If the socket cannot be bound
        """
        self.local_host = local_host
        self._printer = printer or self._print
        try:
            self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._socket.bind((local_host, local_port))
            self._socket.listen(1)
        except OSError as e:
            raise ConnectionError(f"Failed to listen on {local_host}:{local_port}: {e}") from e
        self.local_port = self._socket.getsockname()[1]

    @staticmethod
    def _print(line: str) -> None:
        console.print(line, markup=False, highlight=False)

    def serve_once(self) -> int:
        """
        Accept one connection and print its lines until end-of-stream.

        Returns:
            Number of lines received
        """
        logger.info(f"Listening on {self.local_host}:{self.local_port}")
        client, address = self._socket.accept()
        logger.info(f"Connection from {address[0]}:{address[1]}")
        count = 0
        try:
            with client, client.makefile("rb") as reader:
                for raw in reader:
                    self._printer(raw.decode("utf-8", errors="replace").rstrip("\r\n"))
                    count += 1
        except OSError as e:
            raise ReadError(f"Failed to receive data from {address[0]}:{address[1]}: {e}") from e
        finally:
            self.close()
        logger.info(f"Peer closed after {count} lines")
        return count

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> EchoListener:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["EchoListener"]
