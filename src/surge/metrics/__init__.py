from __future__ import annotations

from surge.metrics.aggregator import Aggregator, percentile
from surge.metrics.models import TRANSPORT_FAILURE, Outcome, ResourceSample, Snapshot
from surge.metrics.sampler import NullSampler, ProcessSampler, ResourceSampler

__all__ = [
    "TRANSPORT_FAILURE",
    "Aggregator",
    "NullSampler",
    "Outcome",
    "ProcessSampler",
    "ResourceSample",
    "ResourceSampler",
    "Snapshot",
    "percentile",
]
