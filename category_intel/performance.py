"""Pipeline performance tracking.

Each stage wrapper times an operation, records a ``<stage>_success`` or
``<stage>_failure`` metric and warns when the stage's latency threshold is
exceeded. Trackers are plain instances: build one per pipeline (or per test)
and pass it to whatever owns the work.
"""
import asyncio
import inspect
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from category_intel.config import config
from category_intel.metrics_store import MemoryMetricsStore, PerformanceMetric, make_metrics_store

logger = logging.getLogger(__name__)

T = TypeVar("T")
Operation = Union[Callable[[], Any], Awaitable[Any]]

CATEGORY_ANALYSIS = "category_analysis"
DYNAMIC_FIELD_GENERATION = "dynamic_field_generation"
EBAY_LISTING = "ebay_listing"
VALIDATION = "validation"

STAGE_THRESHOLDS_MS = {
    CATEGORY_ANALYSIS: 3000,
    DYNAMIC_FIELD_GENERATION: 1000,
    EBAY_LISTING: 10000,
    VALIDATION: 1000,
}

LISTING_SUCCESS_TARGET = 95.0


@dataclass
class PerformanceStats:
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    average_duration: float = 0.0
    min_duration: int = 0
    max_duration: int = 0
    success_rate: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def compute_stats(metrics: list[PerformanceMetric]) -> PerformanceStats:
    if not metrics:
        return PerformanceStats()
    durations = [m.duration_ms for m in metrics]
    successes = sum(1 for m in metrics if "success" in m.event)
    failures = sum(1 for m in metrics if "failure" in m.event)
    return PerformanceStats(
        total_operations=len(metrics),
        successful_operations=successes,
        failed_operations=failures,
        average_duration=sum(durations) / len(durations),
        min_duration=min(durations),
        max_duration=max(durations),
        success_rate=successes / len(metrics) * 100,
    )


def _stage_of(event: str) -> str:
    for suffix in ("_success", "_failure"):
        if event.endswith(suffix):
            return event[: -len(suffix)]
    return event


class PerformanceTracker:
    def __init__(self, store=None, thresholds: Optional[dict[str, int]] = None):
        self.store = store if store is not None else MemoryMetricsStore(config.MAX_METRICS)
        self.thresholds = {**STAGE_THRESHOLDS_MS, **(thresholds or {})}

    @classmethod
    def from_config(cls) -> "PerformanceTracker":
        return cls(make_metrics_store(config.REDIS_URL, config.MAX_METRICS))

    # ── Recording ────────────────────────────────────────────

    def track_metric(self, event: str, duration_ms: int, metadata: Optional[dict] = None):
        """Record one metric and check it against its stage threshold."""
        self.store.append(PerformanceMetric(event=event, duration_ms=int(duration_ms), metadata=metadata or {}))
        threshold = self.thresholds.get(_stage_of(event))
        if threshold is not None and duration_ms > threshold:
            logger.warning(
                "Performance warning: %s took %dms (threshold: %dms)", event, duration_ms, threshold
            )

    async def _record(self, event: str, duration_ms: int, metadata: dict):
        # Network-backed stores write off the event loop.
        if self.store.blocking:
            await asyncio.to_thread(self.track_metric, event, duration_ms, metadata)
        else:
            self.track_metric(event, duration_ms, metadata)

    async def _track(self, stage: str, operation: Operation, label: str, metadata: dict) -> Any:
        start = time.perf_counter()
        try:
            result = operation() if callable(operation) else operation
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            duration = int((time.perf_counter() - start) * 1000)
            logger.error("%s failed after %dms for %s: %s", stage, duration, label, e)
            await self._record(f"{stage}_failure", duration, {**metadata, "error": str(e) or type(e).__name__})
            raise
        duration = int((time.perf_counter() - start) * 1000)
        logger.info("%s completed in %dms for %s", stage, duration, label)
        await self._record(f"{stage}_success", duration, metadata)
        return result

    async def track_category_analysis(self, operation: Operation, item_title: str):
        return await self._track(CATEGORY_ANALYSIS, operation, item_title, {"itemTitle": item_title})

    async def track_dynamic_field_generation(self, operation: Operation, category_id: str):
        return await self._track(
            DYNAMIC_FIELD_GENERATION, operation, f"category {category_id}", {"categoryId": category_id}
        )

    async def track_ebay_listing(self, operation: Operation, item_title: str, category_id: str):
        return await self._track(
            EBAY_LISTING, operation, item_title, {"itemTitle": item_title, "categoryId": category_id}
        )

    async def track_validation(self, operation: Operation, field_count: int):
        return await self._track(VALIDATION, operation, f"{field_count} fields", {"fieldCount": field_count})

    # ── Reading ──────────────────────────────────────────────

    def get_performance_stats(self, event_type: Optional[str] = None) -> PerformanceStats:
        metrics = self.store.all()
        if event_type:
            metrics = [m for m in metrics if m.event == event_type]
        return compute_stats(metrics)

    def get_stage_stats(self, stage: str) -> PerformanceStats:
        """Stats over both outcomes of one stage."""
        return compute_stats([m for m in self.store.all() if _stage_of(m.event) == stage])

    def get_recent_metrics(self, limit: int = 50) -> list[PerformanceMetric]:
        return self.store.recent(limit)

    def clear_metrics(self):
        self.store.clear()

    def generate_performance_report(self) -> str:
        overall = self.get_performance_stats()
        lines = [
            "📊 PERFORMANCE REPORT",
            "=====================",
            "",
            "Overall Performance:",
            f"- Total Operations: {overall.total_operations}",
            f"- Success Rate: {overall.success_rate:.1f}%",
            f"- Average Duration: {overall.average_duration:.0f}ms",
        ]
        sections = [
            ("Category Analysis", CATEGORY_ANALYSIS),
            ("Dynamic Field Generation", DYNAMIC_FIELD_GENERATION),
            ("eBay Listing", EBAY_LISTING),
            ("Validation", VALIDATION),
        ]
        stage_stats = {}
        for title, stage in sections:
            stats = self.get_stage_stats(stage)
            stage_stats[stage] = stats
            lines += [
                "",
                f"{title}:",
                f"- Operations: {stats.total_operations}",
                f"- Success Rate: {stats.success_rate:.1f}%",
                f"- Average Duration: {stats.average_duration:.0f}ms",
                f"- Target: <{self.thresholds[stage]}ms",
            ]
        listing = stage_stats[EBAY_LISTING]
        lines += [
            "",
            "🎯 SUCCESS METRICS STATUS:",
            f"- Listing Success Rate: {listing.success_rate:.1f}% (Target: {LISTING_SUCCESS_TARGET:.0f}%+)",
            f"- Category Analysis Speed: {stage_stats[CATEGORY_ANALYSIS].average_duration:.0f}ms "
            f"(Target: <{self.thresholds[CATEGORY_ANALYSIS]}ms)",
            f"- Field Generation Speed: {stage_stats[DYNAMIC_FIELD_GENERATION].average_duration:.0f}ms "
            f"(Target: <{self.thresholds[DYNAMIC_FIELD_GENERATION]}ms)",
            f"- Validation Speed: {stage_stats[VALIDATION].average_duration:.0f}ms "
            f"(Target: <{self.thresholds[VALIDATION]}ms)",
        ]
        return "\n".join(lines)

    def log_performance_summary(self):
        logger.info("\n%s", self.generate_performance_report())
