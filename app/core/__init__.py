"""Core functionality"""
from .config import load_config, get_config
from .security import verify_master_key, verify_gemini_key

__all__ = ["load_config", "get_config", "verify_master_key", "verify_gemini_key"]
