"""Command-line entry point for the SIP probe.

``sipprobe probe`` sends one early-offer INVITE, delayed-offer INVITE or
OPTIONS request to a target device and prints the exchange.
``sipprobe listen`` accepts one TCP connection and prints what it receives.
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from rich.logging import RichHandler
from rich.panel import Panel

from ._engine import TransactionOutcome, run_transaction
from ._server import EchoListener
from ._types import (
    CallContext,
    ProbeError,
    ProbeMode,
    Target,
    TransportConfig,
    TransportMode,
)
from ._utils import PLAIN_PORT, console


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sipprobe",
        description="Send a single SIP request to a device and print the exchange",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices={"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"},
        help="Logging verbosity",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Shortcut for --log-level=DEBUG",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    probe = commands.add_parser("probe", help="Run one SIP transaction")
    probe.add_argument(
        "mode",
        type=str.lower,
        choices=[mode.value for mode in ProbeMode],
        help="Request to send",
    )
    probe.add_argument("ua", help="Destination SIP UA (host or IP)")
    probe.add_argument("user", nargs="?", help="Destination URI user part (INVITE only)")
    probe.add_argument("domain", nargs="?", help="Destination URI domain part")
    probe.add_argument("--source", required=True, help="Source IP placed in Via/From/Contact")
    probe.add_argument("--tls", action="store_true", help="Use TLS on port 5061")
    probe.add_argument("--ca-certs", help="Trust store (PEM CA bundle) for TLS")
    probe.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip certificate verification for TLS",
    )
    probe.add_argument("--call-id", help="Override the random 5 digit Call-ID")
    probe.add_argument(
        "--connect-timeout",
        type=float,
        help="Seconds to wait for the connection (default: block)",
    )
    probe.add_argument(
        "--read-timeout",
        type=float,
        help="Seconds to wait for each response line (default: block)",
    )

    listen = commands.add_parser("listen", help="Print everything one TCP peer sends")
    listen.add_argument("--host", default="0.0.0.0", help="Local IP to bind")
    listen.add_argument("--port", type=int, default=PLAIN_PORT, help="Local port to bind")
    return parser


def _configure_logging(level: str, debug: bool) -> None:
    effective_level = "DEBUG" if debug else level
    logging.basicConfig(
        level=getattr(logging, effective_level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                show_path=False,
            )
        ],
        force=True,
    )


def _render_summary(outcome: TransactionOutcome) -> Panel:
    status = outcome.status
    status_text = f"{status.status_code} {status.reason}".strip() if status else "No status"
    lines = [
        f"[bold]Mode[/]: {outcome.mode.value}",
        f"[bold]Final state[/]: {outcome.state.name}",
        f"[bold]Status[/]: {status_text}",
    ]
    if outcome.mode.is_invite:
        lines.append(f"[bold]To tag[/]: {outcome.response_tag or '-'}")
        lines.append(f"[bold]ACK[/]: {'sent' if outcome.ack_sent else 'not sent'}")
        if outcome.remote_media_port is not None:
            lines.append(f"[bold]Remote audio port[/]: {outcome.remote_media_port}")
    style = "green" if status and status.is_success else "yellow"
    return Panel("\n".join(lines), title="Probe Summary", border_style=style)


def _run_probe(args: argparse.Namespace) -> int:
    transport = TransportMode.TLS if args.tls else TransportMode.PLAIN
    target = Target(
        host=args.ua,
        user=args.user,
        domain=args.domain,
        transport=transport,
        ca_certs=args.ca_certs,
    )
    context = CallContext(source_ip=args.source)
    if args.call_id:
        context.call_id = args.call_id
    config = TransportConfig(
        connect_timeout=args.connect_timeout,
        read_timeout=args.read_timeout,
        verify_mode=not args.no_verify,
    )

    try:
        outcome = run_transaction(args.mode, target, context, config=config)
    except ValueError as exc:
        logging.error(f"Invalid parameters: {exc}")
        return 2
    except ProbeError as exc:
        logging.error(f"{type(exc).__name__}: {exc}")
        return 1

    console.print(_render_summary(outcome))
    return 0


def _run_listen(args: argparse.Namespace) -> int:
    try:
        with EchoListener(args.host, args.port) as listener:
            listener.serve_once()
    except ProbeError as exc:
        logging.error(f"{type(exc).__name__}: {exc}")
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level, args.debug)
    if args.command == "listen":
        return _run_listen(args)
    return _run_probe(args)


if __name__ == "__main__":
    raise SystemExit(main())
