"""Strapi API client."""

import json
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import unquote

import httpx

from .config import Config, load_config
from .errors import StrapiHTTPError
from .models import Authentication
from .query import flatten, parse
from .storage import CookieStore, LocalStorage

logger = logging.getLogger(__name__)

UserCallback = Callable[[Optional[Dict[str, Any]]], None]


class Strapi:
    """
    Asynchronous client for a Strapi backend.

    Usage:
        strapi = Strapi(Config(url="http://localhost:1337"), local_storage=LocalStorage())
        await strapi.login({"identifier": "admin", "password": "secret"})
        articles = await strapi.find("articles", {"_limit": 10})
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        cookies: Optional[CookieStore] = None,
        local_storage: Optional[LocalStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the API client.

        Args:
            config: Client configuration (loads from env if not provided)
            cookies: Cookie store used to persist the token
            local_storage: Local storage used to persist the token
            transport: Optional httpx transport (mainly for tests)
        """
        self.config = config or load_config()
        self.base_url = self.config.url.rstrip("/")
        self.store_config = self.config.store

        # A backend is only used when it is enabled and an instance was given
        self._cookies = cookies if self.store_config.cookie else None
        self._local_storage = local_storage if self.store_config.local_storage else None

        self.http = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            **self.config.request_defaults,
        )

        self._token: Optional[str] = None
        self._user: Optional[Dict[str, Any]] = None
        self._subscribers: List[UserCallback] = []

        if self.has_storage:
            existing = self.get_token()
            if existing:
                logger.debug("Restored token from storage")
                self.set_token(existing, from_storage=True)

    # -------------------------------------------------------------------------
    # Session state
    # -------------------------------------------------------------------------

    @property
    def has_storage(self) -> bool:
        """True if at least one storage backend is in use."""
        return self._cookies is not None or self._local_storage is not None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._user

    @user.setter
    def user(self, user: Optional[Dict[str, Any]]):
        self._user = user
        for callback in list(self._subscribers):
            callback(user)

    def subscribe(self, callback: UserCallback) -> Callable[[], None]:
        """
        Call `callback(user)` every time the user changes.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def set_user(self, user: Optional[Dict[str, Any]]):
        self.user = user

    # -------------------------------------------------------------------------
    # Request dispatch
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        data: Any = None,
        files: Any = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> Any:
        """
        Send a request and return the decoded JSON body, or the text of a
        non JSON body.

        Args:
            method: HTTP method
            url: Path relative to the base URL
            params: Query parameters, nested dicts/lists are allowed
            data: JSON body, or form fields when `files` is given
            files: Multipart files (httpx `files` format)
            headers: Extra headers, override the client defaults
            **kwargs: Passed to httpx (timeout, cookies, ...)

        Raises:
            StrapiHTTPError: The backend answered with an error status
        """
        if params:
            kwargs["params"] = flatten(params)
        if files is not None:
            kwargs["files"] = files
            if data is not None:
                kwargs["data"] = data
        elif data is not None:
            kwargs["json"] = data

        logger.debug(f"{method.upper()} {url}")
        response = await self.http.request(method.upper(), url, headers=headers, **kwargs)

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            logger.debug(f"{method.upper()} {url} failed with {response.status_code}: {payload}")
            raise StrapiHTTPError(payload, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            # Plain text bodies are returned as-is
            return response.text

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def _authenticate(self, url: str, payload: Dict[str, Any]) -> Authentication:
        self.clear_token()
        data = await self.request("post", url, data=payload)
        authentication = Authentication.from_response(data)
        if authentication.token:
            self.set_token(authentication.token)
        else:
            logger.info(f"No token returned by {url}, the account may need email confirmation")
        await self.set_user(authentication.user)
        return authentication

    async def register(self, payload: Dict[str, Any]) -> Authentication:
        """
        Register a new user.

        Args:
            payload: {"username": ..., "email": ..., "password": ...}
        """
        authentication = await self._authenticate("/auth/local/register", payload)
        logger.info("Registration successful")
        return authentication

    async def login(self, payload: Dict[str, Any]) -> Authentication:
        """
        Login by getting an authentication token.

        Args:
            payload: {"identifier": ..., "password": ...}, identifier is
                either the email or the username
        """
        authentication = await self._authenticate("/auth/local", payload)
        logger.info("Login successful")
        return authentication

    async def forgot_password(self, payload: Dict[str, Any]):
        """
        Ask the backend to email a reset password link.

        The link carries a `code` query parameter required by reset_password.

        Args:
            payload: {"email": ...}
        """
        self.clear_token()
        await self.request("post", "/auth/forgot-password", data=payload)

    async def reset_password(self, payload: Dict[str, Any]) -> Authentication:
        """
        Reset the user password.

        Args:
            payload: {"code": ..., "password": ..., "passwordConfirmation": ...}
        """
        authentication = await self._authenticate("/auth/reset-password", payload)
        logger.info("Password reset successful")
        return authentication

    def logout(self):
        """Forget the token and the user. The backend is not contacted."""
        self.clear_token()
        self.user = None
        logger.info("Logged out")

    async def fetch_user(self) -> Optional[Dict[str, Any]]:
        """
        Fetch the authenticated user (users/me).

        Returns None without any request when no token is available. A failed
        fetch means the token is no longer valid: it is cleared and None is
        returned.
        """
        token = self.sync_token(self._token)
        if not token:
            return None

        try:
            user = await self.find_by_id("users", "me")
            if not isinstance(user, dict):
                raise ValueError(f"Unexpected users/me response: {str(user)[:80]!r}")
            await self.set_user(user)
        except (StrapiHTTPError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Could not fetch current user, clearing session: {e}")
            self.clear_token()
            await self.set_user(None)

        return self.user

    def get_provider_authentication_url(self, provider: str) -> str:
        """Return the URL that starts the provider login flow."""
        return f"{self.base_url}/connect/{provider}"

    async def authenticate_provider(
        self,
        provider: str,
        params: Optional[Dict[str, Any]] = None,
        query_string: Optional[str] = None,
    ) -> Authentication:
        """
        Authenticate with the token the provider redirected back with.

        Only the token is stored; call fetch_user() to load the profile.

        Args:
            provider: Provider name (github, google, facebook, ...)
            params: Callback parameters (e.g. {"access_token": ...})
            query_string: Query string of the redirect URL; when given it is
                parsed and replaces `params`
        """
        self.clear_token()
        if query_string is not None:
            params = parse(query_string, ignore_query_prefix=True)

        data = await self.request("get", f"/auth/{provider}/callback", params=params)
        authentication = Authentication.from_response(data)
        if authentication.token:
            self.set_token(authentication.token)
        logger.info(f"Authenticated with provider {provider}")
        return authentication

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    async def find(self, entity: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        List entries.

        Args:
            entity: Type of entry pluralized (e.g. "articles")
            params: Filter and order queries
        """
        return await self.request("get", f"/{entity}", params=params)

    async def count(self, entity: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Get the total count of entries matching params."""
        return await self.request("get", f"/{entity}/count", params=params)

    async def find_by_id(self, entity: str, id: Any) -> Any:
        return await self.request("get", f"/{entity}/{id}")

    async def create(self, entity: str, data: Any) -> Any:
        return await self.request("post", f"/{entity}", data=data)

    async def update(self, entity: str, id: Any, data: Any) -> Any:
        return await self.request("put", f"/{entity}/{id}", data=data)

    async def delete(self, entity: str, id: Any) -> Any:
        return await self.request("delete", f"/{entity}/{id}")

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    async def find_files(self, params: Optional[Dict[str, Any]] = None) -> Any:
        """List uploaded files."""
        return await self.request("get", "/upload/files", params=params)

    async def find_file(self, id: Any) -> Any:
        return await self.request("get", f"/upload/files/{id}")

    async def search_files(self, query: str) -> Any:
        """
        Search files by keyword.

        The query is URL-decoded before being put in the path, so pass it
        unencoded.
        """
        return await self.request("get", f"/upload/search/{unquote(query)}")

    async def upload(self, files: Any, data: Optional[Dict[str, Any]] = None, **request_options: Any) -> Any:
        """
        Upload files.

        Example:
            with open("cover.png", "rb") as f:
                await strapi.upload({"files": ("cover.png", f, "image/png")})

            # Attach to an entry
            await strapi.upload(
                [("files", ("a.png", f, "image/png"))],
                data={"ref": "article", "refId": "1", "field": "cover"},
            )

        Args:
            files: Files in httpx format (dict or list of tuples)
            data: Extra form fields
            **request_options: Passed to request() (headers, timeout, ...)
        """
        return await self.request("post", "/upload", data=data, files=files, **request_options)

    # -------------------------------------------------------------------------
    # GraphQL
    # -------------------------------------------------------------------------

    async def graphql(self, query: Any, variables: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a GraphQL query.

        Args:
            query: Either the query text or a {"query": ..., "variables": ...} body
            variables: Variables, only used with a query text
        """
        if isinstance(query, str):
            body: Dict[str, Any] = {"query": query}
            if variables is not None:
                body["variables"] = variables
        else:
            body = query
        return await self.request("post", "/graphql", data=body)

    # -------------------------------------------------------------------------
    # Token
    # -------------------------------------------------------------------------

    def set_token(self, token: str, from_storage: bool = False):
        """
        Use `token` for every following request.

        Args:
            token: JWT returned by register/login
            from_storage: The token was just read from storage, don't write it back
        """
        self._token = token
        self.http.headers["Authorization"] = f"Bearer {token}"

        if from_storage:
            return
        if self._local_storage is not None:
            self._local_storage.set_item(self.store_config.local_storage.key, json.dumps(token))
        if self._cookies is not None:
            cookie = self.store_config.cookie
            self._cookies.set(cookie.key, token, **cookie.options)

    def clear_token(self):
        """Stop sending the token and remove it from storage."""
        self._token = None
        self.http.headers.pop("Authorization", None)

        if self._local_storage is not None:
            self._local_storage.remove_item(self.store_config.local_storage.key)
        if self._cookies is not None:
            cookie = self.store_config.cookie
            self._cookies.remove(cookie.key, **cookie.options)

    def get_token(self) -> Optional[str]:
        """Read the token from storage. The cookie wins over local storage."""
        if self._cookies is not None:
            return self._cookies.get(self.store_config.cookie.key)
        if self._local_storage is not None:
            raw = self._local_storage.get_item(self.store_config.local_storage.key)
            if raw is None:
                return None
            try:
                return json.loads(raw)
            except ValueError:
                logger.warning("Ignoring malformed token in local storage")
                return None
        return None

    def sync_token(self, token: Optional[str] = None) -> Optional[str]:
        """
        Apply `token`, or the stored one when not given, or clear the session.

        Returns the token in use, if any.
        """
        if not token:
            token = self.get_token()
        if token:
            self.set_token(token)
        else:
            self.clear_token()
        return token

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self):
        """Close the HTTP client."""
        await self.http.aclose()

    async def __aenter__(self) -> "Strapi":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
