"""Service layer"""

from .gemini_client import GeminiClient, close_gemini_client, get_gemini_client
from .request_converter import build_gemini_request

__all__ = [
    "GeminiClient",
    "close_gemini_client",
    "get_gemini_client",
    "build_gemini_request",
]
