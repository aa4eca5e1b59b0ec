"""Structured logs and in-process counters for the procurement engine.

Log lines are single JSON objects. The request id travels in a context
variable so log records emitted below the Flask layer (orchestrator, event
handlers, CLI seeding) still carry it.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import threading
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict

from flask import g, has_request_context, request


_DURATION_BUCKETS_MS = (1.0, 5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0, 1000.0, 5000.0)
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}

_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("mmg_request_id", default="")


def _clean(value) -> str:
    return str(value or "").strip()


def set_log_request_id(request_id: str | None) -> None:
    _request_id_var.set(_clean(request_id))


@contextlib.contextmanager
def bind_request_id(request_id: str | None):
    token = _request_id_var.set(_clean(request_id))
    try:
        yield _request_id_var.get()
    finally:
        _request_id_var.reset(token)


def current_request_id(default: str | None = None) -> str:
    if has_request_context():
        request_id = _clean(getattr(g, "request_id", None))
        if request_id:
            return request_id
    return _request_id_var.get() or default or "n/a"


def ensure_request_id() -> str:
    request_id = _clean(getattr(g, "request_id", None))
    if not request_id:
        request_id = _clean(request.headers.get("X-Request-Id")) or str(uuid.uuid4())
        g.request_id = request_id
    set_log_request_id(request_id)
    return request_id


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, object] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if has_request_context():
            entry["request_id"] = current_request_id()
            entry["path"] = request.path
            entry["method"] = request.method
        else:
            entry["request_id"] = _clean(getattr(record, "request_id", None)) or current_request_id()

        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key in entry or key.startswith("_") or callable(value):
                continue
            entry[key] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True, separators=(",", ":"), default=str)


def configure_json_logging(app) -> None:
    if not app.config.get("LOG_JSON", True):
        return
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).strip().upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
    app.logger.handlers = []
    app.logger.propagate = True


@dataclass
class _DurationHistogram:
    count: int = 0
    total_ms: float = 0.0
    buckets: Counter = field(default_factory=Counter)

    def observe(self, duration_ms: float) -> None:
        value = max(0.0, float(duration_ms))
        self.count += 1
        self.total_ms += value
        for limit in _DURATION_BUCKETS_MS:
            if value <= limit:
                self.buckets[f"{limit:g}"] += 1

    def as_dict(self) -> dict:
        buckets = {f"{limit:g}": self.buckets[f"{limit:g}"] for limit in _DURATION_BUCKETS_MS}
        buckets["+Inf"] = self.count
        return {"count": self.count, "sum_ms": round(self.total_ms, 3), "buckets": buckets}


class MetricsRegistry:
    """Thread-safe counters exposed through ``/health``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests: Counter = Counter()
        self._request_durations: Dict[str, _DurationHistogram] = {}
        self._operations: Counter = Counter()
        self._operation_durations: Dict[str, _DurationHistogram] = {}
        self._transitions: Counter = Counter()
        self._events: Counter = Counter()

    def observe_http(self, method: str, route: str, status_code: int, duration_ms: float) -> None:
        method_key = _clean(method).upper() or "GET"
        route_key = _clean(route) or "unknown"
        with self._lock:
            self._requests[(method_key, route_key, int(status_code))] += 1
            self._request_durations.setdefault(f"{method_key} {route_key}", _DurationHistogram()).observe(duration_ms)

    def observe_workflow_operation(self, operation: str, outcome: str, duration_ms: float | None = None) -> None:
        operation_key = _clean(operation) or "unknown"
        with self._lock:
            self._operations[(operation_key, _clean(outcome) or "unknown")] += 1
            if duration_ms is not None:
                self._operation_durations.setdefault(operation_key, _DurationHistogram()).observe(duration_ms)

    def observe_transition(self, new_status: str) -> None:
        with self._lock:
            self._transitions[_clean(new_status) or "unknown"] += 1

    def observe_domain_event_emitted(self, event_type: str) -> None:
        with self._lock:
            self._events[_clean(event_type) or "unknown"] += 1

    def snapshot(self) -> dict:
        with self._lock:
            by_operation: Dict[str, Dict[str, int]] = {}
            for (operation, outcome), total in sorted(self._operations.items()):
                by_operation.setdefault(operation, {})[outcome] = total
            return {
                "requests_total": sum(self._requests.values()),
                "errors_total": sum(total for (_, _, status), total in self._requests.items() if status >= 400),
                "request_duration_ms": {
                    route: histogram.as_dict() for route, histogram in sorted(self._request_durations.items())
                },
                "workflow_operations": {
                    "total": sum(self._operations.values()),
                    "by_operation": by_operation,
                    "duration_count": {
                        operation: histogram.count
                        for operation, histogram in sorted(self._operation_durations.items())
                    },
                    "duration_ms": {
                        operation: histogram.as_dict()
                        for operation, histogram in sorted(self._operation_durations.items())
                    },
                },
                "transitions": {
                    "total": sum(self._transitions.values()),
                    "by_status": dict(sorted(self._transitions.items())),
                },
                "domain_events": {
                    "emitted_total": sum(self._events.values()),
                    "by_type": dict(sorted(self._events.items())),
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()
            self._request_durations.clear()
            self._operations.clear()
            self._operation_durations.clear()
            self._transitions.clear()
            self._events.clear()


_METRICS = MetricsRegistry()


def mark_request_start() -> None:
    g._request_started_at = time.perf_counter()


def observe_response(response):
    started = getattr(g, "_request_started_at", None)
    elapsed_ms = (time.perf_counter() - started) * 1000.0 if started else 0.0
    route = request.url_rule.rule if request.url_rule is not None else request.path
    _METRICS.observe_http(request.method, route, response.status_code, elapsed_ms)
    response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
    return response


def metrics_snapshot() -> dict:
    return _METRICS.snapshot()


def observe_workflow_operation(operation: str, outcome: str, duration_ms: float | None = None) -> None:
    _METRICS.observe_workflow_operation(operation, outcome, duration_ms)


def observe_transition(new_status: str) -> None:
    _METRICS.observe_transition(new_status)


def observe_domain_event_emitted(event_type: str) -> None:
    _METRICS.observe_domain_event_emitted(event_type)


def reset_metrics_for_tests() -> None:
    _METRICS.reset()
    set_log_request_id(None)
