"""
Logging and metrics for PubFeed.

Logs are JSON lines on STDERR so STDOUT stays free for the stdio protocol.
"""
import sys
import json
import logging
import threading
from datetime import datetime, timezone
from collections import defaultdict, deque
from typing import Deque, Dict

from config import LOG_LEVEL

# Extra record attributes copied into the JSON payload when present
EXTRA_FIELDS = ('tool', 'url', 'duration_ms', 'article_count', 'error_type', 'source')

# =============================================================================
# LOGGING SETUP
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """JSON-structured logging formatter for observability."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


_configured = False


def configure_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Attach the structured STDERR handler to the 'pubfeed' logger once."""
    global _configured

    root = logging.getLogger('pubfeed')
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
        root.propagate = False
        _configured = True
    return root

# =============================================================================
# METRICS COLLECTION
# =============================================================================

# Samples kept per duration series
DURATION_WINDOW = 1000


def _summarize(samples: Deque[float]) -> Dict:
    ordered = sorted(samples)
    return {
        'count': len(ordered),
        'avg': sum(ordered) / len(ordered),
        'max': ordered[-1],
        'p95': ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))],
    }


class Metrics:
    """Thread-safe counters and duration series, reported by /metrics."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._durations: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=DURATION_WINDOW))
        self._started = datetime.now(timezone.utc)

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] += value

    def record_duration(self, name: str, duration_ms: float) -> None:
        with self._lock:
            self._durations[name].append(duration_ms)

    def get_stats(self) -> Dict:
        with self._lock:
            return {
                'uptime_seconds': (datetime.now(timezone.utc) - self._started).total_seconds(),
                'counters': dict(self._counters),
                'durations': {name: _summarize(samples)
                              for name, samples in self._durations.items() if samples},
            }


metrics = Metrics()
