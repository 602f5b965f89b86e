"""
HostSpecializer - turns a pre-warmed placeholder host into a site-specific one
"""

__version__ = "0.1.0"

from .coordinator import SpecializationCoordinator, SpecializationError

__all__ = ["SpecializationCoordinator", "SpecializationError"]
