"""Prometheus metrics."""

from flag_service.infra.metrics.prometheus import (
    REGISTRY,
    cache_operation_duration_seconds,
    feature_flag_cache_errors_total,
    feature_flag_cache_hits_total,
    feature_flag_cache_misses_total,
    feature_flag_evaluations_total,
    feature_flag_mutations_total,
    feature_flag_notifications_failed_total,
)

__all__ = [
    "REGISTRY",
    "cache_operation_duration_seconds",
    "feature_flag_cache_errors_total",
    "feature_flag_cache_hits_total",
    "feature_flag_cache_misses_total",
    "feature_flag_evaluations_total",
    "feature_flag_mutations_total",
    "feature_flag_notifications_failed_total",
]
