"""Security utilities"""
import re
from typing import Optional

from app.core.config import get_config

BEARER_PATTERN = re.compile(r'^Bearer\s+(.+)$')


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an 'Authorization: Bearer <token>' header"""
    if not authorization:
        return None
    match = BEARER_PATTERN.match(authorization)
    return match.group(1) if match else None


def verify_master_key(authorization: Optional[str] = None) -> bool:
    """Verify the master API key if configured"""
    config = get_config()
    master_api_key = config.server.master_api_key

    if master_api_key is None:
        return True

    return extract_bearer_token(authorization) == master_api_key


def verify_gemini_key(provided_key: Optional[str]) -> bool:
    """Verify a Google-style API key if one is configured"""
    config = get_config()
    gemini_api_key = config.server.gemini_api_key

    if gemini_api_key is None:
        return True

    return provided_key == gemini_api_key
