"""Custom exceptions for the application"""
from typing import Any


class GatewayError(Exception):
    """Base class for gateway errors"""


class UpstreamError(GatewayError):
    """Raised when the Gemini API fails (HTTP status >= 400 or transport error)"""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Gemini API error {status_code}: {message}")


class StreamSerializationError(GatewayError):
    """Raised when a frame payload cannot be rendered as JSON"""


class StreamFinalizedError(GatewayError):
    """Raised when a transformer is used after its stream was finalized"""


class ApiError(GatewayError):
    """HTTP error carrying a protocol-specific JSON body"""

    def __init__(self, status_code: int, body: dict[str, Any]):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body}")

    @classmethod
    def openai(cls, status_code: int, message: str, error_type: str, code: str) -> "ApiError":
        """Build an error in the OpenAI error envelope"""
        return cls(status_code, {
            'error': {'message': message, 'type': error_type, 'code': code}
        })

    @classmethod
    def gemini(cls, status_code: int, message: str, status: str) -> "ApiError":
        """Build an error in the Gemini error envelope"""
        return cls(status_code, {
            'error': {'code': status_code, 'message': message, 'status': status}
        })
