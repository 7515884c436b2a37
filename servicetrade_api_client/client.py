"""
Client implementation for the ServiceTrade REST API.

This module defines the :class:`ServiceTradeClient` class which ties
together a credential store, a :class:`SessionManager` and the
authenticated GET requests used to list resources such as companies.
Unlike a token based API, ServiceTrade identifies a session by a
cookie obtained from ``POST /api/auth``; the cookie is kept in the
credential store and attached to every request.

Usage
-----

.. code-block:: python

    from servicetrade_api_client import ServiceTradeClient

    client = ServiceTradeClient()
    client.login("me@example.com", "secret", timeout_length=8)

    result = client.get_companies(type="vendor", state="CA")
    if result["success"]:
        for company in result["data"]["companies"]:
            print(company["name"])

    client.logout()

Every public request method returns a result dictionary instead of
raising; ``result["success"]`` tells the caller which shape it holds.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .config import ClientSettings
from .exceptions import (
    AuthRequiredError,
    RemoteCallFailure,
    ServiceTradeError,
    TransportException,
)
from .logging_utils import get_logger
from .query import COMPANY_FILTER_FIELDS, COMPANY_TYPE_FLAGS, apply_type_filter, build_query_string
from .scheduler import RecurringScheduler, ThreadingScheduler
from .session import DEFAULT_BASE_URL, SessionManager
from .store import SESSION_COOKIES_KEY, CredentialStore, InMemoryCredentialStore

logger = get_logger(__name__)


class ServiceTradeClient:
    """A simple client for the ServiceTrade REST API.

    Parameters
    ----------
    store : CredentialStore, optional
        Where the session is persisted.  Defaults to an in-memory store.
    scheduler : RecurringScheduler, optional
        Runs the periodic session check.  Defaults to a
        :class:`ThreadingScheduler`.
    base_url : str, optional
        API root.  Defaults to ``https://api.servicetrade.com/api``.
    http : requests.Session, optional
        Shared by the session manager and the query methods.
    request_timeout : float, optional
        Timeout in seconds for every request.
    clock : callable, optional
        Forwarded to :class:`SessionManager`.
    """

    def __init__(
        self,
        *,
        store: Optional[CredentialStore] = None,
        scheduler: Optional[RecurringScheduler] = None,
        base_url: str = DEFAULT_BASE_URL,
        http: Optional[requests.Session] = None,
        request_timeout: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be provided")

        self.store = store if store is not None else InMemoryCredentialStore()
        self.scheduler = scheduler if scheduler is not None else ThreadingScheduler()
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.request_timeout = request_timeout
        self.sessions = SessionManager(
            self.store,
            self.scheduler,
            http=self.http,
            base_url=self.base_url,
            clock=clock,
            request_timeout=request_timeout,
        )

    @classmethod
    def from_env(
        cls,
        *,
        scheduler: Optional[RecurringScheduler] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ServiceTradeClient":
        """Build a client from ``SERVICETRADE_*`` environment variables."""
        settings = ClientSettings.from_env(environ)
        return cls(
            store=settings.make_store(),
            scheduler=scheduler,
            base_url=settings.base_url,
            request_timeout=settings.request_timeout,
        )

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def login(self, email: str, password: str, timeout_length: int = 1, unit: str = "hours", **kwargs: Any) -> Dict[str, Any]:
        """See :meth:`SessionManager.login`."""
        return self.sessions.login(email, password, timeout_length, unit, **kwargs)

    def logout(self) -> str:
        """See :meth:`SessionManager.logout`."""
        return self.sessions.logout()

    def is_logged_in(self) -> bool:
        """See :meth:`SessionManager.is_logged_in`.  May log out an expired session."""
        return self.sessions.is_logged_in()

    @property
    def session_cookie(self) -> Optional[str]:
        """The stored session cookie, or None when logged out."""
        return self.sessions.session_cookie

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _prepare_url(self, path: str, query: str = "") -> str:
        """Join ``path`` to the base URL and append ``query`` if present."""
        if path.startswith("http://") or path.startswith("https://"):
            url = path
        else:
            url = f"{self.base_url}/{path.lstrip('/')}"
        return f"{url}?{query}" if query else url

    def _get(self, path: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Perform an authenticated GET and return the parsed JSON body.

        Raises
        ------
        AuthRequiredError
            If no session cookie is stored.  Nothing is sent.
        RemoteCallFailure
            If the response status is not 200.
        TransportException
            If the request fails or the body is not a JSON object.
        """
        cookie = self.store.get(SESSION_COOKIES_KEY)
        if not cookie:
            raise AuthRequiredError()

        url = self._prepare_url(path, build_query_string(params))
        try:
            response = self.http.get(
                url, headers={"Cookie": cookie}, timeout=self.request_timeout
            )
        except requests.RequestException as exc:
            raise TransportException(f"Failed to connect to {url}: {exc}") from exc

        if response.status_code != 200:
            raise RemoteCallFailure(
                f"{response.status_code} Error for {url}", response.status_code
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportException(f"Invalid JSON from {url}: {exc}") from exc
        if not isinstance(payload, dict):
            raise TransportException(f"Expected a JSON object from {url}")
        return payload

    # ------------------------------------------------------------------
    # Public query methods
    # ------------------------------------------------------------------
    def query(self, resource: str, options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """List ``resource`` with filter ``options``.

        A ``type`` option becomes the matching ``is*`` flag; every other
        option is sent as given.  Pagination fields in the response are
        returned untouched.

        Returns
        -------
        dict
            ``{"success": True, **body}`` on HTTP 200, otherwise a
            failure result with ``error`` and ``message`` (and
            ``status_code`` for unexpected statuses).
        """
        params = apply_type_filter(options)
        try:
            payload = self._get(resource, params)
        except ServiceTradeError as exc:
            logger.debug("Query for %s failed: %s", resource, exc)
            return exc.to_result()
        return {"success": True, **payload}

    def get_companies(self, **options: Any) -> Dict[str, Any]:
        """List companies.

        Recognised filters are ``type`` (``vendor``, ``customer``,
        ``contractor`` or ``contractee``), ``name``, ``refNumber``,
        ``city``, ``state``, ``postalCode``, ``status`` (the API
        defaults to ``active``), ``createdBefore``, ``createdAfter``,
        ``updatedBefore``, ``updatedAfter``, ``tag`` (all tags must
        match) and ``officeId`` (any office matches).  ``tag`` and
        ``officeId`` take a comma separated string or a list.
        """
        known = set(COMPANY_FILTER_FIELDS) | set(COMPANY_TYPE_FLAGS.values())
        unknown = sorted(set(options) - known)
        if unknown:
            logger.debug("Passing unrecognised company filters through: %s", ", ".join(unknown))
        return self.query("company", options)
