"""
This module defines the prometheus metrics exported for the Speedify client and the collectors
that fill them in.

Metrics are not kept between scrapes. Every scrape creates a new aioprometheus Registry and the
collectors below set each sample from freshly probed values, so adapters that disappear from
speedify_cli also disappear from the exposition.
"""
import platform
from collections import namedtuple
from importlib.metadata import PackageNotFoundError, version
from operator import attrgetter
from typing import Tuple

from aioprometheus import Counter, Gauge, Registry

NAMESPACE = "speedify"
ADAPTER_LABELS = ("adapterId", "adapterType")

# kind is the aioprometheus collector class used to expose the metric
MetricDesc = namedtuple("MetricDesc", ["name", "doc", "kind", "labels"])


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty parts of a metric name with underscores"""
    return "_".join(part for part in (namespace, subsystem, name) if part)


STATE = MetricDesc(build_fq_name(NAMESPACE, "", "state"),
                   "The state of Speedify: 0 (LOGGED_OUT), 1 (LOGGED_IN), 2 (CONNECTED), "
                   "3 (unknown)",
                   Gauge, ())

# priority is exported as a counter, as it always has been, so existing dashboards keep working
ADAPTER_PRIORITY = MetricDesc(build_fq_name(NAMESPACE, "adapter", "priority"),
                              "The priority of the adapter: 0 (never), 1 (always), 2 (secondary), "
                              "3 (backup), 4 (unknown)",
                              Counter, ADAPTER_LABELS)
ADAPTER_STATE = MetricDesc(build_fq_name(NAMESPACE, "adapter", "state"),
                           "The state of the adapter: 0 (disconnected), 1 (connected), 2 (unknown)",
                           Gauge, ADAPTER_LABELS)
ADAPTER_OVERLIMIT_RATE_LIMIT = MetricDesc(build_fq_name(NAMESPACE, "adapter", "overlimit_rate_limit"),
                                          "The overlimit rate limit of the adapter.",
                                          Gauge, ADAPTER_LABELS)
# Speedify resets daily usage at the start of each day and monthly usage at the start of each
# billing month. Prometheus reads those drops as counter resets, which rate() and increase()
# handle, but the raw value is not monotonic over its lifetime.
ADAPTER_USAGE_DAILY = MetricDesc(build_fq_name(NAMESPACE, "adapter", "daily_usage"),
                                 "The daily data usage of the adapter.",
                                 Counter, ADAPTER_LABELS)
ADAPTER_USAGE_DAILY_BOOST = MetricDesc(build_fq_name(NAMESPACE, "adapter", "daily_usage_boost"),
                                       "The daily data usage boost of the adapter.",
                                       Gauge, ADAPTER_LABELS)
ADAPTER_USAGE_DAILY_LIMIT = MetricDesc(build_fq_name(NAMESPACE, "adapter", "daily_usage_limit"),
                                       "The daily data usage limit of the adapter.",
                                       Gauge, ADAPTER_LABELS)
ADAPTER_USAGE_MONTHLY = MetricDesc(build_fq_name(NAMESPACE, "adapter", "monthly_usage"),
                                   "The monthly data usage of the adapter.",
                                   Counter, ADAPTER_LABELS)
ADAPTER_USAGE_MONTHLY_LIMIT = MetricDesc(build_fq_name(NAMESPACE, "adapter", "monthly_usage_limit"),
                                         "The monthly data usage limit of the adapter.",
                                         Gauge, ADAPTER_LABELS)

# Per-adapter metrics, paired with the Adapter attribute they export
ADAPTER_METRICS = (
    (ADAPTER_PRIORITY, attrgetter("priority_code")),
    (ADAPTER_STATE, attrgetter("state_code")),
    (ADAPTER_OVERLIMIT_RATE_LIMIT, attrgetter("data_usage.overlimit_rate_limit")),
    (ADAPTER_USAGE_DAILY, attrgetter("data_usage.usage_daily")),
    (ADAPTER_USAGE_DAILY_BOOST, attrgetter("data_usage.usage_daily_boost")),
    (ADAPTER_USAGE_DAILY_LIMIT, attrgetter("data_usage.usage_daily_limit")),
    (ADAPTER_USAGE_MONTHLY, attrgetter("data_usage.usage_monthly")),
    (ADAPTER_USAGE_MONTHLY_LIMIT, attrgetter("data_usage.usage_monthly_limit")),
)

SPEEDIFY_METRICS = (STATE,) + tuple(desc for desc, _ in ADAPTER_METRICS)

BUILD_INFO = MetricDesc("speedify_exporter_build_info",
                        "A metric with a constant '1' value labeled by version and pythonversion "
                        "from which speedify_exporter was built.",
                        Gauge, ("version", "pythonversion"))


def register_metrics(registry: Registry, descs: Tuple[MetricDesc, ...]) -> dict:
    """Create an aioprometheus collector in registry for each descriptor, keyed by descriptor"""
    metrics = {}
    for desc in descs:
        metrics[desc] = desc.kind(desc.name, desc.doc, registry=registry)
    return metrics


class SpeedifyCollector:
    """
    Maps the Speedify client state onto prometheus metrics.

    :param probe: object with async state() and adapters() methods, usually a SpeedifyCLI
    """

    def __init__(self, probe):
        self.probe = probe

    def describe(self) -> Tuple[MetricDesc, ...]:
        return SPEEDIFY_METRICS

    async def collect(self, registry: Registry) -> None:
        """Probe the Speedify client and set one sample per field in registry"""
        metrics = register_metrics(registry, self.describe())

        state = await self.probe.state()
        metrics[STATE].set({}, state.state_code)

        for adapter in await self.probe.adapters():
            label_values = (adapter.adapter_id, adapter.type)
            for desc, value in ADAPTER_METRICS:
                metrics[desc].set(dict(zip(desc.labels, label_values)), value(adapter))


class BuildInfoCollector:
    """Exports the exporter's own version"""

    def __init__(self):
        try:
            self.version = version("speedify-exporter")
        except PackageNotFoundError:
            self.version = "unknown"
        self.python_version = platform.python_version()

    def describe(self) -> Tuple[MetricDesc, ...]:
        return (BUILD_INFO,)

    async def collect(self, registry: Registry) -> None:
        metrics = register_metrics(registry, self.describe())
        metrics[BUILD_INFO].set({"version": self.version,
                                 "pythonversion": self.python_version}, 1)
