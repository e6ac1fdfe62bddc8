"""Pass-through calls to the RouterLimits API."""

from .users import ProxyUsersService

__all__ = ["ProxyUsersService"]
