"""Root logging setup and the process-wide error tally.

``LoggerConfigurator`` installs a colorlog handler on the root logger, which
HTTP clients and ``main.py`` log through. ``log_structured_error`` is the
single sink for categorized failures: it logs one line and feeds
``error_aggregator``, whose summary is written when the process exits.
"""

import atexit
import logging
import os
import sys
import time
from collections import defaultdict
from typing import Any

import colorlog

MAX_ERRORS_PER_TYPE = 1000
RECENT_WINDOW_SECONDS = 3600
ALERT_RATE_PER_HOUR = 10.0


class ErrorAggregator:
    """Per-category error history for a long-running relay.

    Each category keeps at most ``MAX_ERRORS_PER_TYPE`` entries; older ones
    are dropped. Used from the event loop thread only.
    """

    def __init__(self):
        self.errors: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.start_time = time.time()
        self._alerted: set[str] = set()

    def record_error(self, error_type: str, message: str, context: dict[str, Any] = None) -> None:
        entries = self.errors[error_type]
        entries.append({"timestamp": time.time(), "message": message, "context": context or {}})
        overflow = len(entries) - MAX_ERRORS_PER_TYPE
        if overflow > 0:
            del entries[:overflow]

    def _stats(self, entries: list[dict[str, Any]], now: float) -> dict[str, Any]:
        hours = max((now - self.start_time) / 3600, 1)
        return {
            "total_count": len(entries),
            "recent_count": sum(
                1 for e in entries if now - e["timestamp"] < RECENT_WINDOW_SECONDS
            ),
            "rate_per_hour": len(entries) / hours,
            "last_occurrence": entries[-1] if entries else None,
        }

    def get_error_summary(self) -> dict[str, Any]:
        now = time.time()
        return {kind: self._stats(entries, now) for kind, entries in self.errors.items()}

    def should_alert(self, error_type: str, threshold_rate: float = ALERT_RATE_PER_HOUR) -> bool:
        entries = self.errors.get(error_type)
        if not entries:
            return False
        return self._stats(entries, time.time())["rate_per_hour"] > threshold_rate

    def take_alert(self, error_type: str) -> bool:
        """True the first time a category crosses the alert rate."""
        if error_type in self._alerted or not self.should_alert(error_type):
            return False
        self._alerted.add(error_type)
        return True

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            logging.info("No errors recorded in current session")
            return
        logging.warning("🚨 ERROR SUMMARY REPORT")
        for kind, stats in sorted(summary.items()):
            logging.warning(
                f"  {kind}: {stats['total_count']} total, "
                f"{stats['recent_count']} in last hour, "
                f"{stats['rate_per_hour']:.1f}/hour"
            )
            last = stats["last_occurrence"]
            if last:
                logging.warning(f"    Last: {last['message']}")

    def clear(self) -> None:
        self.errors.clear()
        self._alerted.clear()
        self.start_time = time.time()


error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception = None,
    context: dict[str, Any] = None,
    level: int = logging.ERROR
) -> None:
    """Log a categorized failure and record it in ``error_aggregator``.

    Args:
        error_type: Category such as 'network', 'auth', 'parsing', 'backfill'.
        message: What failed.
        exception: The underlying exception, if any.
        context: Extra fields appended as ``k=v`` pairs.
        level: Logging level for the line.
    """
    parts = [f"[{error_type.upper()}] {message}"]
    if exception:
        parts.append(f"Exception: {type(exception).__name__}: {exception}")
    if context:
        parts.append("Context: " + " | ".join(f"{k}={v}" for k, v in context.items()))
    logging.log(level, " | ".join(parts))

    error_aggregator.record_error(error_type, message, context)
    if error_aggregator.take_alert(error_type):
        rate = error_aggregator.get_error_summary()[error_type]["rate_per_hour"]
        logging.critical(f"🚨 HIGH ERROR RATE ALERT: {error_type} occurring at {rate:.1f}/hour")


class LoggerConfigurator:
    """Installs the colored root handler; ``DEBUG=true|1|yes`` selects DEBUG."""

    def configure(self):
        level = (
            logging.DEBUG
            if os.environ.get("DEBUG", "").lower() in ("true", "1", "yes")
            else logging.INFO
        )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            colorlog.ColoredFormatter(
                "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
                log_colors={
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "magenta",
                },
                secondary_log_colors={"message": {"ERROR": "red", "CRITICAL": "magenta"}},
                reset=True,
            )
        )
        logging.basicConfig(level=level, handlers=[handler], format="%(message)s", force=True)
        logging.getLogger().setLevel(level)
        # websockets logs every frame at DEBUG
        logging.getLogger("websockets").setLevel(logging.INFO)

        atexit.register(self._log_final_error_summary)
        return handler

    def _log_final_error_summary(self):
        logging.info("📊 Final error summary before shutdown:")
        error_aggregator.log_summary_report()
