"""Data classes returned by the Strapi client."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class Authentication:
    """
    Token and profile returned by the auth endpoints.

    `token` is None when the backend withholds the JWT, e.g. a registration
    waiting for email confirmation.
    """
    token: Optional[str]
    user: Optional[Dict[str, Any]] = None
    raw_data: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "Authentication":
        """Build from a Strapi auth response ({"jwt": ..., "user": {...}})."""
        return cls(token=data.get("jwt"), user=data.get("user"), raw_data=data)
