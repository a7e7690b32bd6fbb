"""AlphaSignal: CLI entrypoint and orchestrator.

Run the sweep loop, the API, or one-off maintenance commands::

    python -m alphasignal.main --sweep
    python -m alphasignal.main --server
    python -m alphasignal.main --once --mock
    python -m alphasignal.main --recent 20
    python -m alphasignal.main             # sweep loop + server (default)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from alphasignal import __version__
from alphasignal.config import get_settings
from alphasignal.utils import setup_logging, time_ago

logger = logging.getLogger("alphasignal")

BANNER = rf"""
     _    _       _           ____  _                   _
    / \  | |_ __ | |__   __ _/ ___|(_) __ _ _ __   __ _| |
   / _ \ | | '_ \| '_ \ / _` \___ \| |/ _` | '_ \ / _` | |
  / ___ \| | |_) | | | | (_| |___) | | (_| | | | | (_| | |
 /_/   \_\_| .__/|_| |_|\__,_|____/|_|\__, |_| |_|\__,_|_|
           |_|                        |___/  v{__version__}
  Contradiction alerts for tracked market voices
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alphasignal",
        description="AlphaSignal: contradiction detection for tracked accounts",
    )
    group = parser.add_argument_group("components")
    group.add_argument("--sweep", action="store_true", help="Run the periodic sweep loop")
    group.add_argument("--server", action="store_true", help="Run FastAPI server")
    group.add_argument("--all", action="store_true", default=False, help="Run everything (default)")

    maint = parser.add_argument_group("maintenance")
    maint.add_argument("--recent", type=int, metavar="N", help="Print the N most recent alerts and exit")
    maint.add_argument("--reset-alerts", action="store_true", help="Delete every stored alert and exit")

    parser.add_argument("--account", action="append", default=[], metavar="HANDLE",
                        help="Track an extra account for this run (repeatable)")
    parser.add_argument("--mock", action="store_true", help="Use the in-memory post source")
    parser.add_argument("--once", action="store_true", help="Run a single sweep then exit")
    return parser


async def _run(args: argparse.Namespace) -> None:
    settings = get_settings()

    mock = args.mock or settings.mock_mode

    from alphasignal.runtime import build_worker
    worker = await build_worker(settings, mock=mock)
    for handle in args.account:
        worker.registry.add(handle)

    try:
        # ── Maintenance commands ───────────────────────────────────────
        if args.reset_alerts:
            removed = await worker.store.reset()
            logger.info("Cleared %d contradiction alerts", removed)
            return

        if args.recent:
            for alert in await worker.store.recent(args.recent):
                print(
                    f"{alert.id}  {alert.account:<18} {alert.type:<16} {alert.severity:<6} "
                    f"{'sent' if alert.alerted else 'pending':<7} {time_ago(alert.created_at)}"
                )
            return

        # ── Single pass ────────────────────────────────────────────────
        if args.once:
            result = await worker.run_sweep()
            print(json.dumps(result.summary(), indent=2, default=str))
            return

        components: list[str] = []
        if args.sweep:
            components.append("sweep")
        if args.server:
            components.append("server")
        if args.all or not components:
            components = ["sweep", "server"]
        logger.info("Starting components: %s", ", ".join(components))

        background_tasks: list[asyncio.Task] = []
        if "sweep" in components:
            background_tasks.append(asyncio.create_task(
                worker.run(interval=settings.sweep_interval_seconds), name="sweep-worker",
            ))

        if "server" in components:
            import uvicorn
            from alphasignal.api.app import create_app

            async def _shared_worker():
                return worker

            app = create_app(worker_factory=_shared_worker)
            config = uvicorn.Config(
                app,
                host=settings.api_host,
                port=settings.api_port,
                log_level=settings.log_level.lower(),
            )
            server = uvicorn.Server(config)
            await server.serve()
            for t in background_tasks:
                t.cancel()
        else:
            logger.info("Sweep loop running, press Ctrl+C to stop")
            try:
                await asyncio.gather(*background_tasks)
            except asyncio.CancelledError:
                logger.info("Shutdown requested")
                for t in background_tasks:
                    t.cancel()
    finally:
        await worker.aclose()
        from alphasignal.db.database import dispose_engine
        await dispose_engine()


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)

    print(BANNER, file=sys.stderr)

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
