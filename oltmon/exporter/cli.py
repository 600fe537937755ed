"""CLI entry point for the metrics exporter: HTTP endpoint plus periodic sweep.

Examples:
  oltmon serve -c config.yaml
  oltmon serve --port 9200 --interval 60
  oltmon serve --once
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from loguru import logger
from prometheus_client import start_http_server

from oltmon.acquisition.service import AcquisitionService
from oltmon.config import AppConfig, load_config
from oltmon.exceptions import OltError
from oltmon.exporter.metrics import OnuMetrics
from oltmon.exporter.scheduler import SweepScheduler


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Build argparse parser for the exporter."""
    parser = argparse.ArgumentParser(
        prog="oltmon serve",
        description="Sweep ONUs on the OLT periodically and expose them as Prometheus metrics.",
    )
    parser.add_argument("-c", "--config", help="Config file (default: $OLTMON_CONFIG or config.yaml)")
    parser.add_argument("-p", "--port", type=int, help="Metrics HTTP port (overrides exporter.metrics_port)")
    parser.add_argument("-i", "--interval", type=float, help="Seconds between sweeps (overrides exporter.interval)")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep, print the exposition text and exit (no HTTP server)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(args)


def build_scheduler(cfg: AppConfig, service: AcquisitionService, interval: float | None = None) -> SweepScheduler:
    metrics = OnuMetrics(namespace=cfg.exporter.namespace, power_ceiling=cfg.olt.power_ceiling)
    return SweepScheduler(
        service,
        metrics,
        scan=cfg.exporter.scan,
        interval=interval if interval is not None else cfg.exporter.interval,
    )


async def _serve(scheduler: SweepScheduler) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.request_stop)
        except NotImplementedError:
            # no signal handlers on this platform's event loop
            pass
    try:
        await scheduler.start()
    finally:
        await scheduler.service.close()


async def _sweep_once(scheduler: SweepScheduler) -> None:
    try:
        await scheduler.run_once()
    finally:
        await scheduler.service.close()


def main(args: list[str] | None = None) -> None:
    """Main entry point for the exporter CLI."""
    parsed = parse_args(args)

    if not parsed.verbose:
        logger.remove()
        logger.add(sys.stderr, level="INFO")

    try:
        cfg = load_config(parsed.config)
        service = AcquisitionService.from_config(cfg)
    except OltError as e:
        logger.error(f"Exporter startup failed: {e}")
        sys.exit(1)

    scheduler = build_scheduler(cfg, service, parsed.interval)

    if parsed.once:
        from prometheus_client import generate_latest

        asyncio.run(_sweep_once(scheduler))
        sys.stdout.write(generate_latest(scheduler.metrics.registry).decode())
        return

    port = parsed.port or cfg.exporter.metrics_port
    start_http_server(port, registry=scheduler.metrics.registry)
    logger.info(f"Serving metrics on :{port}/metrics, sweeping every {scheduler.interval:.0f}s")

    try:
        asyncio.run(_serve(scheduler))
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
