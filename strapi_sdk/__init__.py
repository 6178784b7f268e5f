"""
Strapi SDK.

Asynchronous client for the Strapi headless CMS: authentication, entries,
files and GraphQL, with the JWT persisted to pluggable cookie/local stores.
"""

from .client import Strapi
from .config import Config, CookieConfig, LocalStorageConfig, StoreConfig, load_config
from .errors import StrapiHTTPError, extract_message
from .models import Authentication
from .storage import CookieStore, LocalStorage

__all__ = [
    # Client
    "Strapi",
    # Config
    "Config",
    "CookieConfig",
    "LocalStorageConfig",
    "StoreConfig",
    "load_config",
    # Errors
    "StrapiHTTPError",
    "extract_message",
    # Data classes
    "Authentication",
    # Storage
    "CookieStore",
    "LocalStorage",
]
