"""Batch orchestration on top of a sequence client."""

from seqtag.pipeline.batch import ItemResult, fan_out

__all__ = [
    "ItemResult",
    "fan_out",
]
