"""
Core application modules.
Contains configuration, logging, metrics and outbound-call protection.
"""
from .config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
