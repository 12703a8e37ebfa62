"""
Async client for the BSD (Blue State Digital) REST API.
"""

from groundcontrol.bsd.client import (
    BSDClient,
    BSDError,
    BSDExistsError,
    BSDValidationError,
)

__all__ = ["BSDClient", "BSDError", "BSDExistsError", "BSDValidationError"]
