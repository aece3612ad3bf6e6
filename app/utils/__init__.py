"""Utility helpers"""
from .streaming import (
    PrimedStream,
    collect_completion,
    create_streaming_response,
    stream_sse,
)

__all__ = ["PrimedStream", "collect_completion", "create_streaming_response", "stream_sse"]
