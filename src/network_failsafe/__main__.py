# --- Standard library imports ---
import sys
import signal
import asyncio
import logging
import argparse

# --- Project imports ---
from .config import Config
from .engine import FailoverEngine
from .network import select_adapter
from .notify import Notifier, WebhookNotifier, build_notifier
from .config_store import ConfigStore
from .command_runner import CommandRunner
from .reachability import ReachabilityProbe
from .logger import get_logger, setup_logging


async def supervise(engine: FailoverEngine, status_interval_s: float) -> None:
    """
    Start the engine and report its status until cancelled.

    The engine owns its own tick timer; this loop only observes it by
    polling `get_status()` at its own cadence. On POSIX, SIGHUP restarts
    the engine so a list saved by `set-priority` takes effect live.
    """
    logger = get_logger("supervisor")
    loop = asyncio.get_running_loop()
    reload_signal = getattr(signal, "SIGHUP", None)

    def reload() -> None:
        logger.info("🔁 SIGHUP received; reloading failover config")
        engine.restart()

    engine.start()
    if reload_signal is not None:
        loop.add_signal_handler(reload_signal, reload)

    try:
        while True:
            await asyncio.sleep(status_interval_s)
            logger.info(f"🛜 {engine.get_status().summary()}")
    finally:
        if reload_signal is not None:
            loop.remove_signal_handler(reload_signal)
        engine.stop()


def build_engine(store: ConfigStore, notifier: Notifier) -> FailoverEngine:
    runner = CommandRunner()
    adapter = select_adapter(runner)
    probe = ReachabilityProbe(runner)
    return FailoverEngine(
        config_loader=store.load,
        adapter=adapter,
        probe=probe,
        notifier=notifier,
    )


def cmd_run(args: argparse.Namespace) -> int:
    logger = get_logger("main")
    logger.info("🚀 Starting Network Fail-Safe")
    logger.debug(f"Python version: {sys.version}")

    store = ConfigStore(args.config)
    notifier = build_notifier()
    engine = build_engine(store, notifier)

    try:
        asyncio.run(supervise(engine, Config.STATUS_LOG_INTERVAL_S))
    except KeyboardInterrupt:
        logger.info("👋 Interrupted; engine stopped")
    finally:
        if isinstance(notifier, WebhookNotifier):
            notifier.close()   # flush pending pushes
    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    adapter = select_adapter(CommandRunner())
    profiles = asyncio.run(adapter.list_profiles())
    for name in sorted(profiles):
        print(name)
    return 0


def cmd_set_priority(args: argparse.Namespace) -> int:
    store = ConfigStore(args.config)
    doc = store.save({"priorityList": list(args.names)})
    for i, name in enumerate(doc["priorityList"], start=1):
        print(f"#{i} {name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="network-failsafe",
        description="Keep this host online by failing over between ranked network profiles.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"failover config JSON (default: {Config.CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="also write logs to this rotating file (default: $LOG_FILE)",
    )
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="run the failover engine (default)")
    run.set_defaults(func=cmd_run)

    profiles = sub.add_parser("profiles", help="list network profiles known to the OS")
    profiles.set_defaults(func=cmd_profiles)

    priority = sub.add_parser("set-priority", help="save a new priority list (highest first)")
    priority.add_argument("names", nargs="+", metavar="NAME")
    priority.set_defaults(func=cmd_set_priority)

    parser.set_defaults(func=cmd_run)
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the network fail-safe service.

    Configures logging and dispatches the selected subcommand.
    """
    args = build_parser().parse_args(argv)
    setup_logging(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        log_file=args.log_file,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
