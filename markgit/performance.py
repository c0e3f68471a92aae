"""Timing utilities for version-control operations."""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator, List, Optional


SLOW_COMMAND_SECONDS = 10.0


@dataclass
class PerformanceMetrics:
    """Timing of a single operation."""
    operation: str
    duration: float
    start_time: float
    end_time: float
    context: Optional[Dict[str, Any]] = None
    success: bool = True


class PerformanceLogger:
    """
    Records how long repository operations take.

    Commit, revert and sync are wrapped in ``time_operation`` so slow
    repositories and slow remotes show up in the logs.
    """

    def __init__(self, logger_name: str = 'markgit.performance', history_size: int = 200):
        self.logger = logging.getLogger(logger_name)
        self.history_size = history_size
        self._metrics: List[PerformanceMetrics] = []
        self._lock = threading.Lock()

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.DEBUG
    ) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Failures are logged at error level and re-raised unchanged.

        Args:
            operation: Name of the operation being timed
            context: Additional context information
            log_level: Logging level for the completion message
        """
        start_time = time.time()
        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.error(f"{operation} failed after {time.time() - start_time:.3f}s: {e}")
            raise
        finally:
            end_time = time.time()
            self._record(PerformanceMetrics(
                operation=operation,
                duration=end_time - start_time,
                start_time=start_time,
                end_time=end_time,
                context=context,
                success=success
            ))

            if success:
                self.logger.log(log_level, f"{operation} completed in {end_time - start_time:.3f}s")
                if context:
                    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
                    self.logger.debug(f"{operation} context: {context_str}")

    def log_git_command_performance(self, command: str, duration: float, success: bool = True) -> None:
        """Log how long an external git process ran."""
        status = "succeeded" if success else "failed"
        self.logger.info(f"Git command '{command}' {status} in {duration:.3f}s")

        if duration > SLOW_COMMAND_SECONDS:
            self.logger.warning(f"Slow Git operation detected: '{command}' took {duration:.3f}s")

    def _record(self, metrics: PerformanceMetrics) -> None:
        with self._lock:
            self._metrics.append(metrics)
            if len(self._metrics) > self.history_size:
                del self._metrics[:-self.history_size]

    def get_performance_summary(self) -> Dict[str, Any]:
        """
        Get a summary of recorded metrics.

        Returns:
            Dictionary with operation count, average duration, success rate and slowest operation
        """
        with self._lock:
            metrics = list(self._metrics)

        if not metrics:
            return {"total_operations": 0, "average_duration": 0.0}

        total_duration = sum(m.duration for m in metrics)
        slowest_op = max(metrics, key=lambda m: m.duration)

        return {
            "total_operations": len(metrics),
            "total_duration": total_duration,
            "average_duration": total_duration / len(metrics),
            "success_rate": sum(1 for m in metrics if m.success) / len(metrics),
            "slowest_operation": {
                "name": slowest_op.operation,
                "duration": slowest_op.duration
            }
        }


# Global performance logger instance
_performance_logger: Optional[PerformanceLogger] = None
_performance_logger_guard = threading.Lock()


def get_performance_logger() -> PerformanceLogger:
    """Get or create the global performance logger instance."""
    global _performance_logger
    with _performance_logger_guard:
        if _performance_logger is None:
            _performance_logger = PerformanceLogger()
        return _performance_logger
