"""
Token storage backends.

The client never touches a global environment to persist its token. Instead
the caller hands it zero, one or two stores:

- a cookie store (raw token string, written with cookie attributes)
- a local storage (key/value store holding JSON encoded values)

Any object with the same methods can be used in their place.
"""

import json
import logging
import time
from datetime import datetime
from http.cookiejar import Cookie
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

logger = logging.getLogger(__name__)


class CookieStore:
    """Cookie jar backed by httpx.Cookies."""

    # Attributes accepted by set(); `expires` is in days or a datetime
    OPTIONS = ("domain", "path", "secure", "expires", "httponly", "samesite")

    def __init__(self, cookies: Optional[httpx.Cookies] = None):
        self.cookies = cookies if cookies is not None else httpx.Cookies()

    def get(self, key: str) -> Optional[str]:
        """Return the cookie value, or None if unset or expired."""
        # Same name may be set under several domains/paths, take the first one
        for cookie in self.cookies.jar:
            if cookie.name == key and not cookie.is_expired():
                return cookie.value
        return None

    def set(self, key: str, value: str, **options: Any):
        """
        Set a cookie with its attributes.

        Raises:
            ValueError: An option is not one of OPTIONS
        """
        unknown = set(options) - set(self.OPTIONS)
        if unknown:
            raise ValueError(f"Unsupported cookie options: {', '.join(sorted(unknown))}")

        domain = options.get("domain") or ""
        path = options.get("path") or "/"
        expires = _expires_at(options.get("expires"))

        rest: Dict[str, Optional[str]] = {}
        if options.get("httponly"):
            rest["HttpOnly"] = None
        if options.get("samesite"):
            rest["SameSite"] = str(options["samesite"])

        self.cookies.jar.set_cookie(Cookie(
            version=0,
            name=key,
            value=value,
            port=None,
            port_specified=False,
            domain=domain,
            domain_specified=bool(domain),
            domain_initial_dot=domain.startswith("."),
            path=path,
            path_specified=True,
            secure=bool(options.get("secure", False)),
            expires=expires,
            discard=expires is None,
            comment=None,
            comment_url=None,
            rest=rest,
            rfc2109=False,
        ))

    def remove(self, key: str, **options: Any):
        """Remove a cookie if present."""
        self.cookies.delete(key, domain=options.get("domain"), path=options.get("path"))


def _expires_at(expires: Any) -> Optional[int]:
    """Convert a days count or a datetime to a unix timestamp."""
    if expires is None:
        return None
    if isinstance(expires, datetime):
        return int(expires.timestamp())
    return int(time.time() + float(expires) * 86400)


class LocalStorage:
    """
    Key/value store with local storage semantics: string keys, string values.

    When file_path is given every write is flushed to that JSON file and the
    file is read back on construction, so the token survives restarts.
    """

    def __init__(self, file_path: Optional[Union[str, Path]] = None):
        self.file_path = Path(file_path) if file_path else None
        self._items: Dict[str, str] = {}
        self._load()

    def _load(self):
        """Load items from file."""
        if not self.file_path or not self.file_path.exists():
            return
        try:
            data = json.loads(self.file_path.read_text())
            self._items = {str(k): str(v) for k, v in data.items()}
            logger.debug(f"Loaded {len(self._items)} items from {self.file_path}")
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Could not load local storage from {self.file_path}: {e}")
            self._items = {}

    def _save(self):
        """Save items to file."""
        if not self.file_path:
            return
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self.file_path.write_text(json.dumps(self._items, indent=2))

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = value
        self._save()

    def remove_item(self, key: str):
        if key in self._items:
            del self._items[key]
            self._save()

    def __len__(self) -> int:
        return len(self._items)
