"""nm-bridge command line entry point.

Usage:
    python -m nmbridge [options] COMMAND [args]

Commands:
    state                     Show the current network
    list                      List visible wireless networks
    saved                     List saved wireless profiles
    connect SSID              Connect to a wireless network
    disconnect                Deactivate the current connection
    forget SSID               Delete the saved profile for SSID
    radio [on|off]            Show or switch the wireless radio
    networking [on|off]       Show or switch all networking
    available                 Check whether a wireless device exists
    watch                     Print debounced network changes
    stats [INTERFACE]         Show interface traffic (lists interfaces without one)
    serve                     Run the REST API

Options:
    --config PATH     Path to config file (default: /etc/nm-bridge/config.yaml)
    --debug           Enable debug logging
"""

import argparse
import json
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable

from . import __version__
from .core.config import DEFAULT_CONFIG_PATH, Config, load_config
from .core.errors import NMBridgeError
from .core.logging import get_logger, setup_logging
from .network.context import NetworkContext
from .network.models import ConnectionRequest, NetworkRecord, SecurityType
from .network.stats import BandwidthTracker, list_interfaces

logger = get_logger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _switch(value: str | None) -> bool | None:
    return None if value is None else value == "on"


# =============================================================================
# Commands
# =============================================================================


def cmd_state(context: NetworkContext, args: argparse.Namespace) -> int:
    _print_json(context.resolve_current().to_dict())
    return 0


def cmd_list(context: NetworkContext, args: argparse.Namespace) -> int:
    _print_json([record.to_dict() for record in context.list_visible()])
    return 0


def cmd_saved(context: NetworkContext, args: argparse.Namespace) -> int:
    _print_json([record.to_dict() for record in context.list_saved()])
    return 0


def cmd_connect(context: NetworkContext, args: argparse.Namespace) -> int:
    request = ConnectionRequest(
        ssid=args.ssid,
        password=args.password,
        security=args.security,
        username=args.username,
    )
    _print_json(context.connect(request).to_dict())
    return 0


def cmd_disconnect(context: NetworkContext, args: argparse.Namespace) -> int:
    disconnected = context.disconnect()
    _print_json({"disconnected": disconnected})
    return 0


def cmd_forget(context: NetworkContext, args: argparse.Namespace) -> int:
    deleted = context.delete_saved(args.ssid)
    _print_json({"ssid": args.ssid, "deleted": deleted})
    return 0 if deleted else 1


def cmd_radio(context: NetworkContext, args: argparse.Namespace) -> int:
    enabled = _switch(args.state)
    if enabled is not None:
        context.set_radio_enabled(enabled)
    _print_json({"enabled": context.get_radio_enabled()})
    return 0


def cmd_networking(context: NetworkContext, args: argparse.Namespace) -> int:
    enabled = _switch(args.state)
    if enabled is None:
        state = context.get_networking_enabled()
    else:
        state = context.set_networking_enabled(enabled)
    _print_json({"enabled": state})
    return 0


def cmd_available(context: NetworkContext, args: argparse.Namespace) -> int:
    _print_json({"available": context.is_radio_available()})
    return 0


def cmd_watch(context: NetworkContext, args: argparse.Namespace) -> int:
    done = threading.Event()

    def on_change(record: NetworkRecord) -> None:
        print(json.dumps(record.to_dict()), flush=True)

    def on_signal(sig, frame):
        logger.info("Received signal %s, stopping", sig)
        done.set()

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    unsubscribe = context.subscribe(on_change)
    context.start_notifications()
    logger.info("Watching for network changes. Press Ctrl+C to exit.")
    try:
        done.wait()
    finally:
        unsubscribe()
        context.stop_notifications()
    return 0


def cmd_stats(context: NetworkContext, args: argparse.Namespace) -> int:
    if not args.interface:
        _print_json(list_interfaces())
        return 0

    tracker = BandwidthTracker(args.interface)
    time.sleep(args.interval)
    _print_json(tracker.sample().to_dict())
    return 0


def cmd_serve(context: NetworkContext, args: argparse.Namespace) -> int:
    import uvicorn

    from .web import create_app

    config = context.config
    host = args.host or config.web.host
    port = args.port or config.web.port

    app = create_app(context, manage_lifecycle=True)
    logger.info("Web server starting on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="warning")
    return 0


Command = Callable[[NetworkContext, argparse.Namespace], int]

# Commands that manage the bus client themselves or never touch it
_SELF_MANAGED = {"stats", "serve"}


# =============================================================================
# Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nmbridge",
        description="NetworkManager bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("state", help="Show the current network").set_defaults(func=cmd_state)
    sub.add_parser("list", help="List visible wireless networks").set_defaults(func=cmd_list)
    sub.add_parser("saved", help="List saved wireless profiles").set_defaults(func=cmd_saved)

    connect = sub.add_parser("connect", help="Connect to a wireless network")
    connect.add_argument("ssid")
    connect.add_argument("--password", default=None)
    connect.add_argument(
        "--security",
        default=SecurityType.WPA2_PSK.value,
        choices=[s.value for s in SecurityType],
    )
    connect.add_argument("--username", default=None, help="Identity for wpa-eap")
    connect.set_defaults(func=cmd_connect)

    sub.add_parser("disconnect", help="Deactivate the current connection").set_defaults(
        func=cmd_disconnect
    )

    forget = sub.add_parser("forget", help="Delete a saved profile")
    forget.add_argument("ssid")
    forget.set_defaults(func=cmd_forget)

    for name, func, help_text in (
        ("radio", cmd_radio, "Show or switch the wireless radio"),
        ("networking", cmd_networking, "Show or switch all networking"),
    ):
        switch = sub.add_parser(name, help=help_text)
        switch.add_argument("state", nargs="?", choices=["on", "off"])
        switch.set_defaults(func=func)

    sub.add_parser("available", help="Check for a wireless device").set_defaults(
        func=cmd_available
    )
    sub.add_parser("watch", help="Print debounced network changes").set_defaults(func=cmd_watch)

    stats = sub.add_parser("stats", help="Show interface traffic")
    stats.add_argument("interface", nargs="?")
    stats.add_argument("--interval", type=float, default=1.0, help="Sampling interval in seconds")
    stats.set_defaults(func=cmd_stats)

    serve = sub.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    return parser


def _load(config_path: Path | None) -> Config:
    if config_path is None and not Path(DEFAULT_CONFIG_PATH).exists():
        return Config()
    return load_config(config_path)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Setup initial logging
    setup_logging(level="DEBUG" if args.debug else "WARNING")

    try:
        config = _load(args.config)
    except NMBridgeError as e:
        logger.error("%s", e)
        return 2

    setup_logging(
        level="DEBUG" if args.debug else config.logging.level,
        log_format=config.logging.format,
        log_file=config.logging.file,
        max_size_mb=config.logging.max_size_mb,
        backup_count=config.logging.backup_count,
    )
    logger.debug("nm-bridge v%s", __version__)

    context = NetworkContext(config)
    func: Command = args.func

    try:
        if args.command in _SELF_MANAGED:
            return func(context, args)
        with context:
            return func(context, args)
    except NMBridgeError as e:
        logger.debug("Command failed", exc_info=True)
        print(json.dumps({"error": e.to_dict()}, default=str), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
