"""Prometheus metrics for the flag service with exemplar support."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram

# Custom registry so embedding applications control exposition
REGISTRY = CollectorRegistry()

# Covers cache round trips from 1ms to 1s
CACHE_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
)

# Cache client metrics
cache_operation_duration_seconds = Histogram(
    "cache_operation_duration_seconds",
    "Cache operation duration in seconds",
    ["operation", "cache_name"],
    buckets=CACHE_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# Feature flag metrics
feature_flag_evaluations_total = Counter(
    "feature_flag_evaluations_total",
    "Total number of feature flag evaluations",
    ["result"],
    registry=REGISTRY,
)

feature_flag_cache_hits_total = Counter(
    "feature_flag_cache_hits_total",
    "Total number of flag lookups served from cache",
    registry=REGISTRY,
)

feature_flag_cache_misses_total = Counter(
    "feature_flag_cache_misses_total",
    "Total number of flag lookups that fell through to the store",
    registry=REGISTRY,
)

feature_flag_cache_errors_total = Counter(
    "feature_flag_cache_errors_total",
    "Total number of failed flag cache operations",
    ["operation"],
    registry=REGISTRY,
)

feature_flag_notifications_failed_total = Counter(
    "feature_flag_notifications_failed_total",
    "Total number of change notifications that failed to deliver",
    ["kind"],
    registry=REGISTRY,
)

feature_flag_mutations_total = Counter(
    "feature_flag_mutations_total",
    "Total number of committed feature flag mutations",
    ["operation"],
    registry=REGISTRY,
)
