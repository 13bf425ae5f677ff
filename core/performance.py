import time
from collections import Counter, defaultdict
from contextlib import contextmanager
from typing import Dict, List, Optional

from core.logger import get_logger
from core.utils import format_duration, get_utc_now

logger = get_logger(__name__)


class PerformanceMonitor:
    """Tracks cycle durations and outcome kinds per target."""

    def __init__(self):
        self.samples: Dict[str, List[dict]] = defaultdict(list)
        self.outcomes: Dict[str, Counter] = defaultdict(Counter)

    @contextmanager
    def measure(self, operation: str, context: Optional[Dict] = None):
        """
        Times the wrapped block. Cancellation is recorded but not logged as an error.

        Usage:
            with monitor.measure("watch_cycle", {"name": target.name}):
                await service.run_cycle(session, target)
        """
        start = time.monotonic()
        ok = False
        try:
            yield
            ok = True
        finally:
            duration = time.monotonic() - start
            self.samples[operation].append(
                {
                    "duration": duration,
                    "timestamp": get_utc_now(),
                    "context": context or {},
                    "success": ok,
                }
            )
            if ok:
                logger.debug(f"{operation} completed", duration=duration, context=context or {})
            else:
                logger.warning(f"{operation} aborted", duration=duration, context=context or {})

    def record_outcome(self, name: str, kind: str) -> None:
        self.outcomes[name][kind] += 1

    def get_stats(self, operation: str) -> Dict:
        durations = [s["duration"] for s in self.samples.get(operation, [])]
        if not durations:
            return {}
        successes = sum(1 for s in self.samples[operation] if s["success"])
        return {
            "operation": operation,
            "count": len(durations),
            "success_rate": successes / len(durations) * 100,
            "avg_duration": sum(durations) / len(durations),
            "max_duration": max(durations),
        }

    def log_summary(self):
        if not self.samples:
            logger.info("No performance metrics collected yet")
            return

        logger.info("=" * 60)
        logger.info("CYCLE SUMMARY")
        logger.info("=" * 60)
        for operation in self.samples:
            stats = self.get_stats(operation)
            logger.info(
                f"{operation}: {stats['count']} runs, "
                f"{stats['success_rate']:.1f}% completed, "
                f"avg {format_duration(stats['avg_duration'])} "
                f"(max {format_duration(stats['max_duration'])})"
            )
        for name, kinds in sorted(self.outcomes.items()):
            summary = ", ".join(f"{kind}={count}" for kind, count in sorted(kinds.items()))
            logger.info(f"{name}: {summary}")
        logger.info("=" * 60)

    def reset(self):
        self.samples.clear()
        self.outcomes.clear()


# Global instance
_performance_monitor = None


def get_performance_monitor() -> PerformanceMonitor:
    """Get singleton performance monitor instance"""
    global _performance_monitor
    if _performance_monitor is None:
        _performance_monitor = PerformanceMonitor()
    return _performance_monitor
