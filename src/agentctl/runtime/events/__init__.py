"""Typed, ordered run events and output normalization."""

from agentctl.runtime.events.models import LIFECYCLE_EVENT_TYPES, AgentEvent, AgentEventType
from agentctl.runtime.events.normalizer import (
    LineSplitter,
    OutputEventNormalizer,
    normalize_event_type,
    split_lines,
)

__all__ = [
    "LIFECYCLE_EVENT_TYPES",
    "AgentEvent",
    "AgentEventType",
    "LineSplitter",
    "OutputEventNormalizer",
    "normalize_event_type",
    "split_lines",
]
