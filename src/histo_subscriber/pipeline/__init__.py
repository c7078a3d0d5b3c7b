"""
Pipeline Module
===============

Receive -> check -> decode -> report driver with explicit states.
"""

from histo_subscriber.pipeline.driver import (
    PipelineMetrics,
    PipelineState,
    SubscriberPipeline,
)

__all__ = [
    "PipelineMetrics",
    "PipelineState",
    "SubscriberPipeline",
]
