"""
Python client for interacting with the Help Scout Mailbox API.

This package provides a `HelpScoutClient` class that handles OAuth2
client-credentials authentication against Help Scout, makes
authenticated requests to the Mailbox API, raises a dedicated
exception for each documented error status and collects paged search
results into a single list.

Examples
--------

```python
from helpscout_api_client import HelpScoutClient

client = HelpScoutClient(
    client_id="YOUR_APP_ID",
    client_secret="YOUR_APP_SECRET",
)

mailboxes = client.get_mailboxes()
conversation = client.get_conversation(123456)
closed = client.search_conversations("status:closed")
```

The client logs through the ``helpscout_api_client`` logger and never
configures handlers itself.
"""

import logging

from .auth import Credentials, TokenManager
from .client import ApiResponse, HelpScoutClient
from .exceptions import (
    ForbiddenError,
    HelpScoutAPIError,
    HelpScoutConnectionError,
    HelpScoutError,
    InternalServerError,
    NotFoundError,
    NotImplementedStatusError,
    ServiceUnavailableError,
    TooManyRequestsError,
    UnauthorizedError,
    ValidationError,
)
from .variants import EMBEDDED_VARIANT, ITEMS_VARIANT, ApiVariant, get_variant

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "HelpScoutClient",
    "ApiResponse",
    "Credentials",
    "TokenManager",
    "ApiVariant",
    "ITEMS_VARIANT",
    "EMBEDDED_VARIANT",
    "get_variant",
    "HelpScoutError",
    "HelpScoutConnectionError",
    "HelpScoutAPIError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "TooManyRequestsError",
    "InternalServerError",
    "ServiceUnavailableError",
    "NotImplementedStatusError",
]
