# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for monitoring the mail sender.

All metrics use the ``mailsender_`` prefix.

Metrics exposed:
    - ``mailsender_sent_total``: Counter of delivered messages per mode.
    - ``mailsender_sent_bytes_total``: Counter of message bytes written per mode.
    - ``mailsender_errors_total``: Counter of failed sends per mode and error code.
    - ``mailsender_rejected_total``: Counter of requests failing validation.

Example:
    Accessing metrics via the REST API::

        GET /metrics

    Returns Prometheus text format suitable for scraping.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class MailMetrics:
    """Prometheus metrics collector for the mail sender.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
        sent: Counter tracking delivered messages.
        sent_bytes: Counter tracking message bytes written to the server.
        errors: Counter tracking failed dispatches.
        rejected: Counter tracking requests refused by validation.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. If not provided,
                a new registry is created so that independent service
                instances never share counters.
        """
        self.registry = registry or CollectorRegistry()
        self.sent = Counter(
            "mailsender_sent_total",
            "Total sent emails",
            ["mode"],
            registry=self.registry,
        )
        self.sent_bytes = Counter(
            "mailsender_sent_bytes_total",
            "Total message bytes written",
            ["mode"],
            registry=self.registry,
        )
        self.errors = Counter(
            "mailsender_errors_total",
            "Total send errors",
            ["mode", "code"],
            registry=self.registry,
        )
        self.rejected = Counter(
            "mailsender_rejected_total",
            "Total requests rejected by validation",
            ["code"],
            registry=self.registry,
        )

    def inc_sent(self, mode: str, bytes_written: int) -> None:
        """Record a delivered message.

        Args:
            mode: Dispatch mode label.
            bytes_written: Size of the message written to the data stream.
        """
        self.sent.labels(mode=mode).inc()
        self.sent_bytes.labels(mode=mode).inc(bytes_written)

    def inc_error(self, mode: str, code: str) -> None:
        self.errors.labels(mode=mode, code=code or "unknown").inc()

    def inc_rejected(self, code: str) -> None:
        self.rejected.labels(code=code or "unknown").inc()

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
