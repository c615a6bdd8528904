from prometheus_client import CollectorRegistry, Counter, Gauge


class CachePrometheusMetrics:
    """Metrics of the instance to group cache.

    The metrics are kept in a private registry so that more than one cache
    can live in a process (tests for example).
    """
    def __init__(self, registry: CollectorRegistry = None):
        self.registry: CollectorRegistry = registry or CollectorRegistry(
            auto_describe=True)
        self.resyncs: Counter = Counter(
            "resyncs",
            "Number of completed rebuilds of the instance to group cache.",
            unit="",
            namespace="cuscaler",
            registry=self.registry)
        self.resync_failures: Counter = Counter(
            "resync_failures",
            "Number of rebuilds of the instance to group cache which "
            "failed because a scaling group could not be listed.",
            unit="",
            namespace="cuscaler",
            registry=self.registry)
        self.cache_hits: Counter = Counter(
            "cache_hits",
            "Number of lookups answered from the instance to group map.",
            unit="",
            namespace="cuscaler",
            registry=self.registry)
        self.negative_cache_hits: Counter = Counter(
            "negative_cache_hits",
            "Number of lookups answered from the set of instances known "
            "to belong to no managed group.",
            unit="",
            namespace="cuscaler",
            registry=self.registry)
        self.cached_instances: Gauge = Gauge(
            "cached_instances",
            "Number of instances in the instance to group map.",
            unit="",
            namespace="cuscaler",
            registry=self.registry)
