"""Data models and schemas"""
from .config import AppConfig, ModelConfig, ServerConfig, StreamConfig, UpstreamConfig
from .events import EventKind, GenerationEvent, classify_chunk

__all__ = [
    "AppConfig",
    "ModelConfig",
    "ServerConfig",
    "StreamConfig",
    "UpstreamConfig",
    "EventKind",
    "GenerationEvent",
    "classify_chunk",
]
