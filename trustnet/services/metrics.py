# -*- coding: utf-8 -*-
"""
Service for managing Prometheus metrics.

Provides a centralized service for creating, registering, and collecting
metrics, including the trust-engine counters (score calculations, consent
transitions, collector failures). Also includes middleware for automatically
recording HTTP request metrics.
"""

import os
import time
import uuid
from typing import Optional
from flask import Flask, request, g, current_app, has_app_context
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram
from prometheus_client.exposition import generate_latest


SCORE_BUCKETS = (100, 200, 300, 400, 500, 600, 700, 800, 900, 1000)


def init_metrics(app: Flask) -> None:
    """Initialize metrics service and endpoints."""
    service = MetricsService()
    app.extensions['metrics'] = service

    if service.enabled:
        @app.before_request
        def before_request():
            g.start_time = time.time()

        @app.after_request
        def after_request(response):
            duration = time.time() - getattr(g, 'start_time', time.time())
            service.record_http_request(
                route=request.path,
                method=request.method,
                status_code=response.status_code,
                duration_seconds=duration
            )
            return response

        @app.route("/metrics")
        def metrics():
            return generate_latest(service.registry), 200, {
                'Content-Type': 'text/plain; version=0.0.4; charset=utf-8'}


def get_metrics_service() -> Optional['MetricsService']:
    """Get the metrics service instance from the current app context."""
    if has_app_context():
        return current_app.extensions.get('metrics')
    return None


class MetricsService:
    """Service for managing Prometheus metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.enabled = os.environ.get(
            "TRUSTNET_METRICS_ENABLED",
            "true").lower() == "true"
        self.registry = registry if registry is not None else REGISTRY

        if self.enabled:
            self.http_requests_total = Counter(
                "trustnet_http_requests_total",
                "Total number of HTTP requests.",
                ["route", "method", "status"],
                registry=self.registry
            )
            self.http_request_duration_seconds = Histogram(
                "trustnet_http_request_duration_seconds",
                "Duration of HTTP requests in seconds.",
                ["route", "method"],
                registry=self.registry
            )
            self.http_errors_total = Counter(
                "trustnet_http_errors_total",
                "Total number of HTTP errors.",
                ["route", "kind"],
                registry=self.registry
            )
            self.score_calculations_total = Counter(
                "trustnet_score_calculations_total",
                "Total number of trust score calculations.",
                ["status"],
                registry=self.registry
            )
            self.score_value = Histogram(
                "trustnet_score_value",
                "Distribution of computed trust scores.",
                buckets=SCORE_BUCKETS,
                registry=self.registry
            )
            self.consent_transitions_total = Counter(
                "trustnet_consent_transitions_total",
                "Total number of consent state transitions.",
                ["consent_type", "action"],
                registry=self.registry
            )
            self.collector_failures_total = Counter(
                "trustnet_collector_failures_total",
                "Metric computations that failed and were skipped.",
                ["metric_type"],
                registry=self.registry
            )

    def record_http_request(
            self,
            route: str,
            method: str,
            status_code: int,
            duration_seconds: float):
        """Record an HTTP request."""
        if self.enabled:
            normalized_route = self._normalize_route(route)
            self.http_requests_total.labels(
                route=normalized_route,
                method=method,
                status=status_code).inc()
            self.http_request_duration_seconds.labels(
                route=normalized_route, method=method).observe(duration_seconds)

    def record_http_error(self, route: str, kind: str):
        if self.enabled:
            self.http_errors_total.labels(
                route=self._normalize_route(route), kind=kind).inc()

    def record_score_calculation(self, score: int, status: str):
        if self.enabled:
            self.score_calculations_total.labels(status=status).inc()
            self.score_value.observe(score)

    def record_consent_transition(self, consent_type: str, action: str):
        if self.enabled:
            self.consent_transitions_total.labels(
                consent_type=consent_type, action=action).inc()

    def record_collector_failure(self, metric_type: str):
        if self.enabled:
            self.collector_failures_total.labels(metric_type=metric_type).inc()

    def get_metrics(self) -> str:
        """Get metrics data as text."""
        if self.enabled:
            return generate_latest(self.registry).decode('utf-8')
        return ""

    def _normalize_route(self, route: str) -> str:
        parts = route.split('/')
        for i, part in enumerate(parts):
            if part.isdigit():
                parts[i] = '{id}'
            try:
                uuid.UUID(part)
                parts[i] = '{uuid}'
            except (ValueError, AttributeError):
                pass
        return '/'.join(parts)
