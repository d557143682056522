"""
Metrics collection for the log scanner
Counts decoded / dropped instructions, emitted events and scan latency
"""

import bisect
import statistics
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class HistogramStats:
    """Statistical summary of histogram data"""
    operation: str
    count: int
    p50: float
    p95: float
    p99: float
    mean: float
    min: float
    max: float


class MetricsCollector:
    """
    Collects counters and latency histograms

    Scans may run on several worker threads at once, so every mutation
    happens under a single lock.
    """

    def __init__(self, enable_histogram: bool = True, histogram_buckets: Optional[List[float]] = None):
        """
        Initialize metrics collector

        Args:
            enable_histogram: Whether to collect histogram data
            histogram_buckets: Latency buckets for histogram (ms)
        """
        self.enable_histogram = enable_histogram
        self.histogram_buckets = histogram_buckets or [0.1, 0.5, 1, 5, 10, 50, 100]

        self._lock = threading.Lock()
        self._latencies: Dict[str, deque] = defaultdict(lambda: deque(maxlen=10000))
        self._counters: Dict[str, int] = defaultdict(int)
        self._labeled_counters: Dict[tuple, int] = defaultdict(int)
        self._gauges: Dict[str, float] = {}

    def record_latency(self, operation: str, latency_ms: float) -> None:
        """
        Record operation latency

        Args:
            operation: Operation name (e.g., "log_scan")
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            if self.enable_histogram:
                self._latencies[operation].append(latency_ms)
            self._counters[f"{operation}_count"] += 1

    def increment_counter(
        self,
        metric_name: str,
        value: int = 1,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Increment a counter metric

        Args:
            metric_name: Name of the counter
            value: Amount to increment (default 1)
            labels: Optional labels for the metric
        """
        with self._lock:
            if labels:
                self._labeled_counters[(metric_name, tuple(sorted(labels.items())))] += value
            else:
                self._counters[metric_name] += value

    def set_gauge(self, metric_name: str, value: float) -> None:
        """Set a gauge metric value"""
        with self._lock:
            self._gauges[metric_name] = value

    def get_gauge(self, metric_name: str) -> float:
        """Get current gauge value"""
        with self._lock:
            return self._gauges.get(metric_name, 0.0)

    def get_counter(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Get current counter value"""
        with self._lock:
            if labels:
                return self._labeled_counters.get((metric_name, tuple(sorted(labels.items()))), 0)
            return self._counters.get(metric_name, 0)

    def get_histogram_stats(self, operation: str) -> Optional[HistogramStats]:
        """
        Get histogram statistics for an operation

        Returns:
            HistogramStats or None if no data
        """
        with self._lock:
            latencies = sorted(self._latencies.get(operation, []))

        if not latencies:
            return None

        return HistogramStats(
            operation=operation,
            count=len(latencies),
            p50=self._percentile(latencies, 50),
            p95=self._percentile(latencies, 95),
            p99=self._percentile(latencies, 99),
            mean=statistics.mean(latencies),
            min=latencies[0],
            max=latencies[-1]
        )

    def get_bucket_counts(self, operation: str) -> Dict[str, int]:
        """
        Cumulative latency counts per configured bucket

        Keys are "le_<bound>" plus "le_inf" for the total, Prometheus style.
        """
        with self._lock:
            latencies = sorted(self._latencies.get(operation, []))
            bounds = sorted(self.histogram_buckets)

        counts = {f"le_{bound}": bisect.bisect_right(latencies, bound) for bound in bounds}
        counts["le_inf"] = len(latencies)
        return counts

    def export_metrics(self) -> Dict:
        """
        Export all metrics as JSON-serializable dict

        Labeled counters are flattened to "name{key=value,...}".
        """
        with self._lock:
            counters = dict(self._counters)
            for (name, labels), value in self._labeled_counters.items():
                label_str = ",".join(f"{k}={v}" for k, v in labels)
                counters[f"{name}{{{label_str}}}"] = value
            gauges = dict(self._gauges)
            operations = list(self._latencies.keys())

        histograms = {}
        for operation in operations:
            stats = self.get_histogram_stats(operation)
            if stats:
                histograms[operation] = {
                    "count": stats.count,
                    "p50": stats.p50,
                    "p95": stats.p95,
                    "p99": stats.p99,
                    "mean": stats.mean,
                    "min": stats.min,
                    "max": stats.max,
                    "buckets": self.get_bucket_counts(operation)
                }

        return {"counters": counters, "gauges": gauges, "histograms": histograms}

    def reset(self) -> None:
        """Reset all metrics (useful for testing)"""
        with self._lock:
            self._latencies.clear()
            self._counters.clear()
            self._labeled_counters.clear()
            self._gauges.clear()

    @staticmethod
    def _percentile(sorted_data: List[float], percentile: float) -> float:
        """Calculate percentile from sorted data"""
        if len(sorted_data) == 1:
            return sorted_data[0]

        index = (percentile / 100) * (len(sorted_data) - 1)
        lower = int(index)
        upper = lower + 1

        if upper >= len(sorted_data):
            return sorted_data[-1]

        weight = index - lower
        return sorted_data[lower] * (1 - weight) + sorted_data[upper] * weight


class LatencyTimer:
    """Context manager for measuring operation latency"""

    def __init__(self, metrics: MetricsCollector, operation: str):
        self.metrics = metrics
        self.operation = operation
        self.start_time: Optional[float] = None
        self.latency_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.latency_ms = (time.perf_counter() - self.start_time) * 1000
            self.metrics.record_latency(self.operation, self.latency_ms)


# Global metrics instance
_global_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance"""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def init_metrics(enable_histogram: bool = True, histogram_buckets: Optional[List[float]] = None) -> MetricsCollector:
    """
    Configure the global metrics collector

    Modules grab get_metrics() at import time, so the existing instance is
    reconfigured in place rather than replaced.
    """
    collector = get_metrics()
    collector.enable_histogram = enable_histogram
    if histogram_buckets:
        collector.histogram_buckets = histogram_buckets
    return collector
