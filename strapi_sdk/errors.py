"""Errors raised by the Strapi client."""

from typing import Any, Optional


def extract_message(payload: Any) -> Any:
    """
    Pull a human readable message out of a Strapi error body.

    Strapi nests validation messages as
    ``{"message": [{"messages": [{"message": "..."}]}]}``, a single error as
    ``{"message": {"message": "..."}}`` and plain errors as ``{"message": "..."}``.
    Anything else is returned as-is.
    """
    msg = payload.get("message") if isinstance(payload, dict) else payload

    if isinstance(msg, list):
        try:
            return msg[0]["messages"][0]["message"]
        except (IndexError, KeyError, TypeError):
            return msg
    if isinstance(msg, dict):
        return msg.get("message")
    return msg


class StrapiHTTPError(Exception):
    """The backend answered with an error status."""

    def __init__(self, payload: Any, status_code: Optional[int] = None):
        message = extract_message(payload)
        if message is None:
            message = f"HTTP {status_code}" if status_code else "Unknown error"
        super().__init__(message)
        self.message = message
        self.original = payload
        self.status_code = status_code

    def __str__(self) -> str:
        return str(self.message)
