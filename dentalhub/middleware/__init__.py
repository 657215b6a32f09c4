"""
Middleware components for the DentalHub API.
"""

from .cors import OriginPolicyMiddleware, add_cors
from .timeout import TimeoutMiddleware

__all__ = [
    "OriginPolicyMiddleware",
    "TimeoutMiddleware",
    "add_cors",
]
