"""
Prometheus Metrics for Observability

Tracks per-stage latency, item outcomes and chosen rotations.
Exposes /metrics endpoint for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Latency - Per Stage
compose_stage_latency_seconds = Histogram(
    "compose_stage_latency_seconds",
    "Time spent in each compose stage",
    labelnames=["stage", "status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Item outcomes
compose_items_total = Counter(
    "compose_items_total",
    "Total number of items processed",
    labelnames=["operation", "status", "error_type"]
)

# Chosen rotation angles
compose_rotation_angle_degrees = Histogram(
    "compose_rotation_angle_degrees",
    "Rotation applied to the product image",
    labelnames=["mode"],
    buckets=[-90, -60, -30, -5, 0, 5, 30, 60, 90]
)

# Batch size
compose_batch_size = Histogram(
    "compose_batch_size",
    "Number of items per batch",
    labelnames=["operation"],
    buckets=[1, 2, 5, 10, 25, 50, 100]
)

# API Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Application Info
app_info = Info(
    "imagecompose_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment
    })


@contextmanager
def track_stage_latency(stage: str):
    """
    Context manager to track stage latency.

    Usage:
        with track_stage_latency("detect_region"):
            # do work
    """
    start = time.time()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.time() - start
        compose_stage_latency_seconds.labels(stage=stage, status=status).observe(duration)


def record_item_outcome(operation: str, success: bool, error_type: str = "none"):
    """Record the outcome of one processed item."""
    compose_items_total.labels(
        operation=operation,
        status="success" if success else "failed",
        error_type=error_type
    ).inc()


def record_rotation(mode: str, angle: float):
    """Record the rotation applied to a product."""
    compose_rotation_angle_degrees.labels(mode=mode).observe(angle)


def record_batch_size(operation: str, size: int):
    """Record the number of items in a batch."""
    compose_batch_size.labels(operation=operation).observe(size)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
