"""
Configuration module for DentalHub settings.
"""

from dentalhub.config.settings import NEXHEALTH_REQUIRED_VARS, Settings, require_env

__all__ = [
    "NEXHEALTH_REQUIRED_VARS",
    "Settings",
    "require_env",
]
