"""
Session lifecycle for the ServiceTrade API.

:class:`SessionManager` logs in against ``POST /api/auth``, keeps the
returned session cookie and its expiration in a credential store, and
registers a recurring check with a scheduler so that an expired session
is logged out even when nobody calls :meth:`SessionManager.is_logged_in`.

States are simply "logged out" (no cookie stored) and "logged in"
(cookie stored, optionally with an expiration).  Logging in while
already logged in replaces the stored session without contacting the
API to end the previous one.
"""

from __future__ import annotations

import enum
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Union

import requests

from .exceptions import (
    CredentialStoreError,
    RemoteCallFailure,
    ServiceTradeError,
    TransportException,
    ValidationError,
)
from .logging_utils import get_logger
from .scheduler import ALLOWED_MINUTE_INTERVALS, RecurringScheduler
from .store import SESSION_COOKIES_KEY, SESSION_EXPIRATION_KEY, CredentialStore

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.servicetrade.com/api"
SESSION_CHECK_NAME = "servicetrade.session_status"

LOGOUT_SUCCESS = "Logout successful"
LOGOUT_FAILED = "Logout failed"
NO_ACTIVE_SESSION = "No active session to log out from."


class TimeoutUnit(str, enum.Enum):
    HOURS = "hours"
    MINUTES = "minutes"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_whole_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def session_cookie_from_response(response: requests.Response) -> str:
    """Join the cookies set by ``response`` into a ``Cookie`` header value."""
    return "; ".join(f"{c.name}={c.value}" for c in response.cookies)


class SessionManager:
    """Owns login, logout and expiration of the ServiceTrade session.

    Parameters
    ----------
    store : CredentialStore
        Where the session cookie and expiration are persisted.  The
        manager is the only component that writes to it.
    scheduler : RecurringScheduler
        Used to register the periodic session check under
        :data:`SESSION_CHECK_NAME`.
    http : requests.Session, optional
        Session used for the auth requests.  A new one is created when
        omitted.
    base_url : str, optional
        API root, ``https://api.servicetrade.com/api`` by default.
    clock : callable, optional
        Returns the current time as an aware UTC datetime.
    request_timeout : float, optional
        Timeout in seconds passed to every request.

    Notes
    -----
    :meth:`is_logged_in` is not a pure read: when the stored session is
    past its expiration it logs out before returning ``False``.  Use
    :meth:`is_expired` for a side-effect-free check.
    """

    def __init__(
        self,
        store: CredentialStore,
        scheduler: RecurringScheduler,
        *,
        http: Optional[requests.Session] = None,
        base_url: str = DEFAULT_BASE_URL,
        clock: Optional[Callable[[], datetime]] = None,
        request_timeout: Optional[float] = None,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.http = http or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.clock = clock or _utcnow
        self.request_timeout = request_timeout
        self._lock = threading.RLock()

    @property
    def auth_url(self) -> str:
        return f"{self.base_url}/auth"

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_timeout(
        timeout_length: Any,
        unit: Union[TimeoutUnit, str],
        check_frequency: Optional[int],
    ) -> tuple:
        try:
            unit = TimeoutUnit(unit)
        except ValueError:
            raise ValidationError(
                f"unit must be 'hours' or 'minutes', got {unit!r}"
            ) from None

        if unit is TimeoutUnit.HOURS:
            if not _is_whole_number(timeout_length) or timeout_length <= 0:
                raise ValidationError(
                    f"timeout_length must be a positive whole number of hours, got {timeout_length!r}"
                )
            if check_frequency is None:
                check_frequency = 1
            if not _is_whole_number(check_frequency) or check_frequency <= 0:
                raise ValidationError(
                    f"check_frequency must be a positive whole number of hours, got {check_frequency!r}"
                )
            return timedelta(hours=timeout_length), timedelta(hours=check_frequency)

        if not _is_whole_number(timeout_length) or timeout_length not in ALLOWED_MINUTE_INTERVALS:
            raise ValidationError(
                f"timeout_length in minutes must be one of "
                f"{sorted(ALLOWED_MINUTE_INTERVALS)}, got {timeout_length!r}"
            )
        if check_frequency is not None:
            raise ValidationError(
                "check_frequency is only supported when unit is 'hours'"
            )
        interval = timedelta(minutes=timeout_length)
        return interval, interval

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def login(
        self,
        email: str,
        password: str,
        timeout_length: int = 1,
        unit: Union[TimeoutUnit, str] = TimeoutUnit.HOURS,
        *,
        check_frequency: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Authenticate and start a new session.

        Parameters
        ----------
        email, password : str
            Sent to the API unmodified.
        timeout_length : int
            Session length.  Any positive whole number of hours, or one
            of 1, 5, 10, 15 or 30 minutes.
        unit : TimeoutUnit or str
            ``"hours"`` (default) or ``"minutes"``.
        check_frequency : int, optional
            Hours between periodic session checks when ``unit`` is
            hours; defaults to 1.  With minutes the check runs every
            ``timeout_length`` minutes.

        Returns
        -------
        dict
            ``{"success": True}`` or a failure result with a ``message``.

        Raises
        ------
        ValidationError
            If the timeout arguments are invalid.  Nothing is sent.
        """
        timeout, check_interval = self._validate_timeout(
            timeout_length, unit, check_frequency
        )
        payload = {"username": email, "password": password}

        with self._lock:
            try:
                response = self.http.post(
                    self.auth_url, json=payload, timeout=self.request_timeout
                )
            except requests.RequestException as exc:
                logger.warning("Login request failed: %s", exc)
                return TransportException(f"Failed to connect to {self.auth_url}: {exc}").to_result()

            if response.status_code != 200:
                logger.info("Login rejected with status %s", response.status_code)
                return RemoteCallFailure(
                    "Invalid login credentials", response.status_code
                ).to_result()

            cookie = session_cookie_from_response(response)
            if not cookie:
                return RemoteCallFailure(
                    "Login response did not contain a session cookie",
                    response.status_code,
                ).to_result()

            if self.store.get(SESSION_COOKIES_KEY):
                logger.info("Replacing existing session with a new login")

            expires_at = self.clock() + timeout
            # expiration first so a stored cookie always has one
            try:
                self.store.set(SESSION_EXPIRATION_KEY, expires_at.isoformat())
                self.store.set(SESSION_COOKIES_KEY, cookie)
            except CredentialStoreError as exc:
                logger.error("Failed to store session: %s", exc)
                try:
                    self._clear()
                except CredentialStoreError:
                    logger.exception("Failed to roll back partially stored session")
                return exc.to_result()
            self.scheduler.register(
                SESSION_CHECK_NAME, self.check_session_status, check_interval
            )
            logger.info("Logged in; session expires at %s", expires_at.isoformat())
            return {"success": True}

    def logout(self) -> str:
        """End the session remotely and clear local state.

        Local state is cleared and the periodic check cancelled even
        when the remote call fails.
        """
        with self._lock:
            cookie = self.store.get(SESSION_COOKIES_KEY)
            if not cookie:
                return NO_ACTIVE_SESSION

            succeeded = False
            try:
                response = self.http.delete(
                    self.auth_url,
                    headers={"Cookie": cookie},
                    timeout=self.request_timeout,
                )
                succeeded = response.status_code == 204
                if not succeeded:
                    logger.warning("Logout returned status %s", response.status_code)
            except requests.RequestException as exc:
                logger.warning("Logout request failed: %s", exc)
            finally:
                self._clear()
            return LOGOUT_SUCCESS if succeeded else LOGOUT_FAILED

    @property
    def session_cookie(self) -> Optional[str]:
        """The stored ``Cookie`` header value, or None when logged out.

        Unlike :meth:`is_logged_in` this does not check expiration.
        """
        return self.store.get(SESSION_COOKIES_KEY)

    @property
    def expires_at(self) -> Optional[datetime]:
        raw = self.store.get(SESSION_EXPIRATION_KEY)
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            raise ServiceTradeError(f"Stored session expiration is not a timestamp: {raw!r}") from None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def is_expired(self) -> bool:
        """Return True if a session is stored and its expiration has passed."""
        with self._lock:
            if not self.store.get(SESSION_COOKIES_KEY):
                return False
            expires_at = self.expires_at
            return expires_at is not None and self.clock() > expires_at

    def enforce_expiration(self) -> bool:
        """Log out if the stored session has expired.  Returns True if it did."""
        with self._lock:
            if not self.is_expired():
                return False
            logger.info("Session expired at %s; logging out", self.expires_at)
            self.logout()
            return True

    def is_logged_in(self) -> bool:
        """Return whether a live session is stored.

        An expired session is logged out as a side effect.
        """
        with self._lock:
            if not self.store.get(SESSION_COOKIES_KEY):
                return False
            return not self.enforce_expiration()

    def check_session_status(self) -> None:
        """Periodic callback registered at login."""
        if not self.is_logged_in():
            logger.info("User session has expired and has been logged out.")

    def _clear(self) -> None:
        try:
            self.store.delete(SESSION_COOKIES_KEY)
            self.store.delete(SESSION_EXPIRATION_KEY)
        finally:
            self.scheduler.cancel(SESSION_CHECK_NAME)
