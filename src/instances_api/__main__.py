"""CLI entry point for instances-api.

Runs the refresher and the HTTP service together in one process, sharing a
single [PublishedStore][instances_api.core.store.PublishedStore]. With
``--once`` a single refresh cycle runs and the sorted JSON export is written
to stdout instead.

Examples:
    ```bash
    python -m instances_api
    python -m instances_api --config-dir /etc/instances-api --log-level DEBUG
    python -m instances_api --once > instances.json
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from instances_api.core import PublishedStore, start_metrics_server
from instances_api.core.base_service import BaseService
from instances_api.core.logger import Logger, StructuredFormatter
from instances_api.core.yaml import load_yaml
from instances_api.services.api import Api
from instances_api.services.common.sorting import sort_records, to_json
from instances_api.services.refresher import Refresher


CONFIG_BASE = Path("config")

logger = Logger("cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="instances-api",
        description="Instance health listing: refresher and JSON API",
    )

    parser.add_argument(
        "--config-dir",
        type=Path,
        default=CONFIG_BASE,
        help=f"Directory holding services/refresher.yaml and services/api.yaml "
        f"(default: {CONFIG_BASE})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one refresh cycle, print the JSON export and exit",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that output
    from both ``Logger`` and plain ``logging.getLogger()`` calls in the
    sources layer is unified as ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


async def run_once(refresher: Refresher) -> int:
    """Run a single refresh cycle and print the export.

    Returns:
        Exit code: 0 if the cycle published, 1 otherwise.
    """
    try:
        async with refresher:
            outcome = await refresher.refresh()
    except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
        logger.error("refresh_failed", error=str(e), error_type=type(e).__name__)
        return 1

    if not outcome.published:
        logger.error("refresh_not_published", reason=outcome.reason)
        return 1

    print(to_json(sort_records(refresher.store.records()), pretty=True))  # noqa: T201
    return 0


async def run_services(refresher: Refresher, api: Api) -> int:
    """Run the refresher and the HTTP service until shutdown.

    When either service loop exits (signal or failure limit), the other one
    is asked to stop as well.

    Returns:
        Exit code: 0 for a clean shutdown, 1 for failure.
    """
    services: tuple[BaseService[Any], ...] = (refresher, api)

    metrics_config = refresher.config.metrics
    metrics_server = await start_metrics_server(metrics_config)
    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def request_shutdown() -> None:
        for service in services:
            service.request_shutdown()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    async def supervise(service: BaseService[Any]) -> None:
        try:
            await service.run_forever()
        finally:
            request_shutdown()

    try:
        async with refresher, api:
            await asyncio.gather(supervise(refresher), supervise(api))
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error("services_failed", error=str(e), error_type=type(e).__name__)
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


async def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point: parse args, load configs and run."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    services_dir = args.config_dir / "services"
    refresher_dict = _load_yaml_dict(services_dir / "refresher.yaml")
    api_dict = _load_yaml_dict(services_dir / "api.yaml")

    store = PublishedStore()
    refresher = Refresher.from_dict(refresher_dict, store=store)

    if args.once:
        return await run_once(refresher)

    api = Api.from_dict(api_dict, store=store)
    try:
        return await run_services(refresher, api)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
