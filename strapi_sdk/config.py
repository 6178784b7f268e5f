"""Configuration module for the Strapi SDK."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from dotenv import load_dotenv

load_dotenv()

DEFAULT_URL = "http://localhost:1337"
DEFAULT_JWT_KEY = "jwt"


@dataclass
class CookieConfig:
    """Cookie persistence of the token."""
    key: str = field(default_factory=lambda: os.getenv("STRAPI_JWT_KEY", DEFAULT_JWT_KEY))
    options: Dict[str, Any] = field(default_factory=lambda: {"path": os.getenv("STRAPI_COOKIE_PATH", "/")})


@dataclass
class LocalStorageConfig:
    """Local storage persistence of the token."""
    key: str = field(default_factory=lambda: os.getenv("STRAPI_JWT_KEY", DEFAULT_JWT_KEY))


@dataclass
class StoreConfig:
    """
    Which storage backends hold the token.

    Set a backend to None to disable it.
    """
    cookie: Optional[CookieConfig] = field(default_factory=CookieConfig)
    local_storage: Optional[LocalStorageConfig] = field(default_factory=LocalStorageConfig)


@dataclass
class Config:
    """Main configuration container."""
    url: str = field(default_factory=lambda: os.getenv("STRAPI_URL", DEFAULT_URL))

    # Passed straight to httpx.AsyncClient (headers, timeout, verify, ...)
    request_defaults: Dict[str, Any] = field(
        default_factory=lambda: {"timeout": float(os.getenv("STRAPI_TIMEOUT", "30"))}
    )

    store: StoreConfig = field(default_factory=StoreConfig)

    # Only used by the CLI to keep the token between invocations
    token_file: str = field(default_factory=lambda: os.getenv("STRAPI_TOKEN_FILE", "data/.strapi_token.json"))


def load_config() -> Config:
    """Load configuration from environment variables."""
    return Config()
