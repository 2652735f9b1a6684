"""Throughput metrics helpers for pipelines."""

from __future__ import annotations

from detectlens.pipeline.metrics.rate import RateTracker, monotonic_ms


__all__ = [
    "RateTracker",
    "monotonic_ms",
]
