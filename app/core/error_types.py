"""Shared constants for structured API errors."""

# OpenAI error types (client-facing error responses on /v1)
ERROR_TYPE_API = "api_error"
ERROR_TYPE_INVALID_REQUEST = "invalid_request_error"
ERROR_TYPE_AUTHENTICATION = "authentication_error"
ERROR_TYPE_RATE_LIMIT = "rate_limit_error"
ERROR_TYPE_NOT_FOUND = "not_found_error"

# Gemini status strings (client-facing error responses on /v1beta)
STATUS_INVALID_ARGUMENT = "INVALID_ARGUMENT"
STATUS_UNAUTHENTICATED = "UNAUTHENTICATED"
STATUS_NOT_FOUND = "NOT_FOUND"
STATUS_RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
STATUS_INTERNAL = "INTERNAL"


def classify_upstream_status(status_code: int) -> tuple[int, str, str]:
    """Map an upstream HTTP status to (client status, Gemini status, OpenAI type)"""
    if status_code == 429:
        return 429, STATUS_RESOURCE_EXHAUSTED, ERROR_TYPE_RATE_LIMIT
    if status_code in (401, 403):
        return 401, STATUS_UNAUTHENTICATED, ERROR_TYPE_AUTHENTICATION
    if status_code == 404:
        return 404, STATUS_NOT_FOUND, ERROR_TYPE_NOT_FOUND
    return 500, STATUS_INTERNAL, ERROR_TYPE_API
