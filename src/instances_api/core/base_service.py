"""
Abstract base class for long-running instances-api services.

``BaseService[ConfigT]`` provides the lifecycle shared by the refresher and
the read surface: structured logging via
[Logger][instances_api.core.logger.Logger], graceful shutdown via an
``asyncio.Event``, interval-based cycling with
[run_forever()][instances_api.core.base_service.BaseService.run_forever],
an optional consecutive-failure limit and automatic Prometheus metrics.

Every service receives the process-wide
[PublishedStore][instances_api.core.store.PublishedStore]; nothing is
persisted across restarts.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from .logger import Logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
)
from .yaml import load_yaml


if TYPE_CHECKING:
    from types import TracebackType

    from instances_api.models.constants import ServiceName

    from .store import PublishedStore


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class BaseServiceConfig(BaseModel):
    """Configuration shared by all services that run in a loop.

    See Also:
        [BaseService][instances_api.core.base_service.BaseService]: Consumes
            ``interval`` and ``max_consecutive_failures``.
        [MetricsConfig][instances_api.core.metrics.MetricsConfig]: Embedded
            metrics endpoint settings.
    """

    interval: float = Field(
        default=300.0,
        ge=1.0,
        description="Seconds to sleep between the end of one cycle and the next",
    )
    max_consecutive_failures: int = Field(
        default=5,
        ge=0,
        description="Stop after this many consecutive errors (0 = unlimited)",
    )
    json_logs: bool = Field(default=False, description="Emit JSON log records")
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Abstract base class for all instances-api services.

    Subclasses set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][instances_api.core.base_service.BaseService.run].

    Attributes:
        SERVICE_NAME: Identifier used in logging and metrics labels.
        CONFIG_CLASS: Pydantic model used by the factory methods.
        _store: The shared [PublishedStore][instances_api.core.store.PublishedStore].
        _config: Typed service configuration.
        _logger: [Logger][instances_api.core.logger.Logger] named after the
            service.
        _shutdown_event: Clear while running; set once shutdown is requested.

    Note:
        Lifecycle: ``async with service:`` then
        [run_forever()][instances_api.core.base_service.BaseService.run_forever]
        (or a single [run()][instances_api.core.base_service.BaseService.run]
        with ``--once``).
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, store: PublishedStore, config: ConfigT | None = None) -> None:
        self._store = store
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._logger = Logger(self.SERVICE_NAME, json_output=self._config.json_logs)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        """The typed service configuration (read-only)."""
        return self._config

    @property
    def store(self) -> PublishedStore:
        """The shared published record store."""
        return self._store

    @abstractmethod
    async def run(self) -> None:
        """Execute one cycle of the service's main logic.

        Called repeatedly by
        [run_forever()][instances_api.core.base_service.BaseService.run_forever].
        """
        ...

    def request_shutdown(self) -> None:
        """Request a graceful shutdown; safe to call from signal handlers."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Whether shutdown has not been requested yet."""
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Sleep up to ``timeout`` seconds, waking early on shutdown.

        Returns:
            ``True`` if shutdown was requested during the wait, ``False`` if
            the timeout elapsed.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def run_forever(self) -> None:
        """Call [run()][instances_api.core.base_service.BaseService.run] in a loop.

        Sleeps ``config.interval`` seconds after each cycle. Exits when
        shutdown is requested or when ``config.max_consecutive_failures``
        (if non-zero) consecutive cycles raised. ``CancelledError``,
        ``KeyboardInterrupt`` and ``SystemExit`` propagate immediately.

        Metrics tracked: ``cycles_success``, ``cycles_failed``,
        ``errors_{ExceptionType}``, ``consecutive_failures``,
        ``last_cycle_timestamp`` and ``cycle_duration_seconds``.
        """
        interval = self._config.interval
        max_consecutive_failures = self._config.max_consecutive_failures
        metrics_enabled = self._config.metrics.enabled

        if metrics_enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})

        self._logger.info(
            "run_forever_started",
            interval=interval,
            max_consecutive_failures=max_consecutive_failures,
        )

        consecutive_failures = 0

        while self.is_running:
            cycle_start = time.monotonic()

            try:
                await self.run()

                duration = time.monotonic() - cycle_start
                self.inc_counter("cycles_success")
                if metrics_enabled:
                    CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(duration)
                self.set_gauge("last_cycle_timestamp", time.time())
                self.set_gauge("consecutive_failures", 0)
                consecutive_failures = 0

            except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
                raise

            except Exception as e:  # Intentionally broad: top-level error boundary for run_forever
                consecutive_failures += 1

                self.inc_counter("cycles_failed")
                self.set_gauge("consecutive_failures", consecutive_failures)
                self.inc_counter(f"errors_{type(e).__name__}")

                self._logger.error(
                    "run_cycle_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    consecutive_failures=consecutive_failures,
                )

                if 0 < max_consecutive_failures <= consecutive_failures:
                    self._logger.critical(
                        "max_consecutive_failures_reached",
                        failures=consecutive_failures,
                        limit=max_consecutive_failures,
                    )
                    break

            if await self.wait(interval):
                break

        self._logger.info("run_forever_stopped")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, store: PublishedStore, **kwargs: Any) -> Self:
        """Create a service from a YAML configuration file.

        Raises:
            FileNotFoundError: If the file does not exist.
            pydantic.ValidationError: If the configuration is invalid.
        """
        return cls.from_dict(load_yaml(config_path), store=store, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], store: PublishedStore, **kwargs: Any) -> Self:
        """Create a service from a configuration dictionary."""
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(store=store, config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a named gauge for this service; no-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a named counter for this service; no-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
