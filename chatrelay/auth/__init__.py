"""Identity management and token validation."""

from .identity import IdentityManager  # noqa: F401
from .validator import TokenValidator  # noqa: F401

__all__ = ["IdentityManager", "TokenValidator"]
