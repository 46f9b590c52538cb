"""W3C Trace Context helpers for inter-service propagation."""

from __future__ import annotations

from opentelemetry.propagate import inject


def get_trace_headers() -> dict[str, str]:
    """Extract current trace context as headers for outbound messages (HTTP, Kafka)."""
    headers: dict[str, str] = {}
    inject(headers)
    return headers
