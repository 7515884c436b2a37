"""
Python client for interacting with the ServiceTrade REST API.

This package provides a `ServiceTradeClient` class that logs in to
ServiceTrade with an email and password, keeps the session cookie in
a pluggable credential store, and makes authenticated requests to
listing endpoints such as companies.

A session is given a fixed lifetime at login.  A recurring check is
registered with a scheduler so the session is logged out once that
lifetime has passed, even if the application never asks whether it
is still logged in.

Examples
--------

```python
from servicetrade_api_client import JsonFileCredentialStore, ServiceTradeClient

client = ServiceTradeClient(store=JsonFileCredentialStore("~/.servicetrade/session.json"))

# Keep the session for 30 minutes
client.login("me@example.com", "secret", timeout_length=30, unit="minutes")

vendors = client.get_companies(type="vendor", state="CA", tag="hvac,priority")
```

Lifetimes are whole hours, or 1, 5, 10, 15 or 30 minutes; those are
the intervals at which a time-based trigger can run the session check.
"""

from .client import ServiceTradeClient
from .config import ClientSettings
from .exceptions import (
    AuthRequiredError,
    CredentialStoreError,
    RemoteCallFailure,
    ServiceTradeError,
    TransportException,
    ValidationError,
)
from .logging_utils import configure_logging
from .query import COMPANY_FILTER_FIELDS, COMPANY_TYPE_FLAGS, apply_type_filter, build_query_string
from .scheduler import ManualScheduler, RecurringScheduler, ThreadingScheduler
from .session import SESSION_CHECK_NAME, SessionManager, TimeoutUnit
from .store import CredentialStore, InMemoryCredentialStore, JsonFileCredentialStore

__all__ = [
    "ServiceTradeClient",
    "SessionManager",
    "TimeoutUnit",
    "SESSION_CHECK_NAME",
    "ClientSettings",
    "CredentialStore",
    "InMemoryCredentialStore",
    "JsonFileCredentialStore",
    "RecurringScheduler",
    "ThreadingScheduler",
    "ManualScheduler",
    "COMPANY_FILTER_FIELDS",
    "COMPANY_TYPE_FLAGS",
    "apply_type_filter",
    "build_query_string",
    "configure_logging",
    "ServiceTradeError",
    "ValidationError",
    "AuthRequiredError",
    "RemoteCallFailure",
    "TransportException",
    "CredentialStoreError",
]
