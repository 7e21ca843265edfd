"""Prometheus metrics for the site bot.

Metrics are exposed at the `/metrics` endpoint in Prometheus format.

Metrics Defined:
- sitebot_commands_total: Counter of handled chat commands
- sitebot_command_failures_total: Counter of commands that failed on
  GitHub or the state store
- sitebot_build_duration_seconds: Histogram of "build now" run time
- sitebot_build_in_progress: Gauge, 1 while a build is running
"""

from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


# A build is a handful of GitHub calls; anything past a minute is stuck.
BUILD_DURATION_BUCKETS = (0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0)


class BotMetrics:
    """Container for the bot's Prometheus metrics.

    Supports custom registries so tests do not collide on the default one.

    Attributes:
        registry: The Prometheus registry for these metrics.
        commands_total: Counter of commands, labelled by command kind.
        command_failures_total: Counter of failed commands, labelled by kind.
        build_duration_seconds: Histogram of completed build durations.
        build_in_progress: Gauge that is 1 while a build runs.

    Example:
        >>> metrics = BotMetrics(registry=CollectorRegistry())
        >>> metrics.record_command("approve")
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.commands_total = Counter(
            "sitebot_commands_total",
            "Total number of chat commands handled",
            labelnames=["command"],
            registry=self.registry,
        )

        self.command_failures_total = Counter(
            "sitebot_command_failures_total",
            "Total number of chat commands that failed",
            labelnames=["command"],
            registry=self.registry,
        )

        self.build_duration_seconds = Histogram(
            "sitebot_build_duration_seconds",
            "Time spent building scaffold pull requests in seconds",
            buckets=BUILD_DURATION_BUCKETS,
            registry=self.registry,
        )

        self.build_in_progress = Gauge(
            "sitebot_build_in_progress",
            "1 while a build is running, otherwise 0",
            registry=self.registry,
        )

    def record_command(self, command: str) -> None:
        self.commands_total.labels(command=command).inc()

    def record_failure(self, command: str) -> None:
        self.command_failures_total.labels(command=command).inc()

    def record_build_duration(self, duration_seconds: float) -> None:
        self.build_duration_seconds.observe(duration_seconds)

    def set_build_in_progress(self, running: bool) -> None:
        self.build_in_progress.set(1 if running else 0)


# Global metrics instance for the default registry
_default_metrics: Optional[BotMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> BotMetrics:
    """Get or create the bot metrics instance.

    Args:
        registry: Optional Prometheus registry. If None, returns the
                  global metrics instance for the default registry.

    Returns:
        BotMetrics: The metrics instance.
    """
    global _default_metrics

    if registry is not None:
        return BotMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = BotMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Generate Prometheus metrics output for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)
