"""
Client implementation for the Help Scout Mailbox API.

This module defines the :class:`HelpScoutClient` class which
authenticates against Help Scout using the OAuth2 client credentials
grant, performs HTTP requests against the Mailbox API and turns the
documented error statuses into typed exceptions.  Search style
endpoints that answer in pages are collected into a single list by
:meth:`HelpScoutClient.collect_all`.

Usage
-----

.. code-block:: python

    from helpscout_api_client import HelpScoutClient

    client = HelpScoutClient(
        client_id="abc123",
        client_secret="shhsecret",
    )

    conversation_id = client.create_conversation({
        "subject": "Order question",
        "mailboxId": 85,
        "customer": {"email": "bear@acme.com"},
        "threads": [{"type": "customer", "text": "Where is my order?"}],
    })
    for conversation in client.search_conversations("status:active"):
        print(conversation["subject"])

The client requests a token when it is created; constructing it with
invalid credentials raises :class:`UnauthorizedError` straight away.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import date as _date, datetime as _datetime, timezone
from typing import Any, Dict, Mapping, MutableMapping, Optional, Union

import requests

from .auth import DEFAULT_TOKEN_URL, Credentials, TokenManager
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
from .variants import ITEMS_VARIANT, ApiVariant, get_variant

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.helpscout.net/v2"

# Status codes used by Help Scout
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_SERVICE_UNAVAILABLE = 503

SUCCESS_CODES = frozenset({HTTP_OK, HTTP_CREATED, HTTP_NO_CONTENT})

RATE_LIMIT_POLICY = (
    "Rate limit of 400 requests per minute reached "
    "(POST, PUT and DELETE requests count as 2)."
)

_TRAILING_ID = re.compile(r"(\d+)$")


@dataclass(frozen=True)
class ApiResponse:
    """The outcome of a single HTTP call.

    ``data`` holds the parsed JSON body (or the raw text when the body
    is not JSON, or ``None`` when it is empty) and ``text`` the raw
    body.  ``headers`` is the case-insensitive mapping from
    :mod:`requests`.
    """

    status_code: int
    headers: Mapping[str, str]
    data: Any
    text: str

    @property
    def ok(self) -> bool:
        return self.status_code in SUCCESS_CODES


def to_utc_string(value: Union[_datetime, _date, str]) -> str:
    """Render a date or datetime as an ISO 8601 UTC string ending in ``Z``.

    Naive datetimes are assumed to be in UTC already.  Plain dates are
    rendered at midnight.  Strings are passed through untouched.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, _datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    if isinstance(value, _date):
        return value.strftime("%Y-%m-%dT00:00:00Z")
    raise TypeError("expected a date, datetime or str, got %r" % type(value).__name__)


class HelpScoutClient:
    """A client for the Help Scout Mailbox API.

    Parameters
    ----------
    client_id : str
        Your Help Scout application ID.
    client_secret : str
        Your Help Scout application secret.
    variant : str or ApiVariant, optional
        Which API response generation to speak.  ``"items"`` (the
        default) refreshes the token and retries once on ``401`` and
        reads paged results from ``items``/``pages``.  ``"embedded"``
        raises on ``401`` and reads paged results from
        ``_embedded``/``page.totalPages``.
    base_url : str, optional
        Override the API base URL.
    token_url : str, optional
        Override the OAuth token endpoint URL.
    timeout : float, optional
        Default timeout in seconds for every HTTP request.  ``None``
        leaves the transport default in place.
    session : requests.Session, optional
        Session to send requests through.  One is created when omitted.

    Notes
    -----
    A client instance is meant to be used from one thread at a time.
    :attr:`last_response` is overwritten by every call, so read it
    before issuing the next request, or use the :class:`ApiResponse`
    returned by :meth:`request` instead.
    """

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        variant: Union[str, ApiVariant] = ITEMS_VARIANT,
        base_url: Optional[str] = None,
        token_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.credentials = Credentials(client_id=client_id, client_secret=client_secret)
        self.variant = get_variant(variant)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout

        self._owns_session = session is None
        self.session = session or requests.Session()
        self._tokens = TokenManager(
            self.credentials,
            token_url=token_url or DEFAULT_TOKEN_URL,
            session=self.session,
            timeout=timeout,
        )
        self._last_response: Optional[ApiResponse] = None

        try:
            self._tokens.acquire()
        except HelpScoutError:
            self.close()
            raise

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> "HelpScoutClient":
        """Build a client from ``HELPSCOUT_*`` environment variables.

        ``HELPSCOUT_CLIENT_ID`` and ``HELPSCOUT_CLIENT_SECRET`` are
        required; ``HELPSCOUT_API_VARIANT`` is optional.  Keyword
        arguments take precedence over the environment.
        """
        env = os.environ if environ is None else environ
        options: Dict[str, Any] = {
            "client_id": env.get("HELPSCOUT_CLIENT_ID", ""),
            "client_secret": env.get("HELPSCOUT_CLIENT_SECRET", ""),
        }
        if env.get("HELPSCOUT_API_VARIANT"):
            options["variant"] = env["HELPSCOUT_API_VARIANT"]
        options.update(kwargs)
        return cls(**options)

    def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "HelpScoutClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def last_response(self) -> Optional[ApiResponse]:
        """The response of the most recently completed HTTP call."""
        return self._last_response

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _prepare_url(self, path: str) -> str:
        """Join ``path`` onto the API base URL; absolute URLs pass through."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _build_headers(
        self, token: str, headers: Optional[Mapping[str, str]], has_body: bool
    ) -> Dict[str, str]:
        req_headers = {"Authorization": f"Bearer {token}"}
        if headers:
            for key, value in headers.items():
                if key.lower() == "authorization":
                    continue
                req_headers[key] = value
        if has_body and not any(k.lower() == "content-type" for k in req_headers):
            req_headers["Content-Type"] = "application/json"
        return req_headers

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]],
        json: Optional[Any],
        headers: Optional[Mapping[str, str]],
        timeout: Optional[float],
    ) -> ApiResponse:
        req_headers = self._build_headers(self._tokens.token, headers, json is not None)
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=req_headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as exc:
            raise HelpScoutConnectionError(f"Failed to connect to {url}: {exc}") from exc

        api_response = ApiResponse(
            status_code=response.status_code,
            headers=response.headers,
            data=self._parse_body(response),
            text=response.text,
        )
        self._last_response = api_response
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return api_response

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        """Perform an HTTP request against the Help Scout API.

        Parameters
        ----------
        method : str
            The HTTP verb, such as ``"GET"``, ``"POST"``, ``"PUT"``,
            ``"PATCH"`` or ``"DELETE"``.
        path : str
            The endpoint path relative to the base URL, e.g.
            ``"conversations/123"``.  Absolute URLs are used as-is.
        params : dict, optional
            Query parameters to include in the request.
        json : object, optional
            A JSON-serialisable body.  When present, ``Content-Type:
            application/json`` is sent unless ``headers`` already
            carries a content type.
        headers : dict, optional
            Additional HTTP headers.  ``Authorization`` is always set
            by the client and cannot be overridden.
        timeout : float, optional
            Timeout in seconds, overriding the client default.

        Returns
        -------
        ApiResponse
            The response of a ``200``, ``201`` or ``204`` call.

        Raises
        ------
        HelpScoutAPIError
            A subclass matching the error status returned by the API.
        HelpScoutConnectionError
            If the request could not be sent.
        """
        method = method.upper()
        url = self._prepare_url(path)
        send_kwargs = dict(params=params, json=json, headers=headers, timeout=timeout)

        api_response = self._send(method, url, **send_kwargs)
        if api_response.status_code == HTTP_UNAUTHORIZED and self.variant.refresh_on_unauthorized:
            logger.warning("%s %s returned 401; refreshing token and retrying once", method, url)
            self._tokens.acquire()
            api_response = self._send(method, url, **send_kwargs)

        self._raise_for_status(api_response)
        return api_response

    def _raise_for_status(self, api_response: ApiResponse) -> None:
        """Raise the exception matching an error status; no-op on success."""
        status = api_response.status_code
        if status in SUCCESS_CODES:
            return

        body = api_response.data if isinstance(api_response.data, dict) else {}
        error_kwargs = dict(status_code=status, response=api_response)

        if status == HTTP_BAD_REQUEST:
            errors = body.get("validationErrors")
            if errors is None:
                errors = (body.get("_embedded") or {}).get("errors")
            raise ValidationError(errors, **error_kwargs)
        if status == HTTP_UNAUTHORIZED:
            raise UnauthorizedError(body.get("message"), **error_kwargs)
        if status == HTTP_FORBIDDEN:
            raise ForbiddenError(body.get("message"), **error_kwargs)
        if status == HTTP_NOT_FOUND:
            raise NotFoundError(body.get("message"), **error_kwargs)
        if status == HTTP_TOO_MANY_REQUESTS:
            retry_after = api_response.headers.get("Retry-After")
            logger.warning("Help Scout rate limit hit; retry after %s seconds", retry_after)
            raise TooManyRequestsError(
                f"{RATE_LIMIT_POLICY} Next request possible in {retry_after} seconds.",
                retry_after=retry_after,
                **error_kwargs,
            )
        if status == HTTP_INTERNAL_SERVER_ERROR:
            raise InternalServerError(body.get("error") or api_response.text, **error_kwargs)
        if status == HTTP_SERVICE_UNAVAILABLE:
            raise ServiceUnavailableError(body.get("message"), **error_kwargs)

        message = f"Help Scout returned a status this client does not handle: {status}"
        if body.get("message"):
            message = f"{message}: {body['message']}"
        raise NotImplementedStatusError(message, **error_kwargs)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Like :meth:`request` but return only the parsed body."""
        return self.request(method, path, **kwargs).data

    # ------------------------------------------------------------------
    # Public convenience methods
    # ------------------------------------------------------------------
    def get(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a GET request.

        See :meth:`request` for full parameter documentation.
        """
        return self._request("GET", path, params=params, headers=headers, timeout=timeout)

    def post(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a POST request.

        See :meth:`request` for full parameter documentation.
        """
        return self._request(
            "POST", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def put(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a PUT request.

        See :meth:`request` for full parameter documentation.
        """
        return self._request(
            "PUT", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def patch(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a PATCH request.

        See :meth:`request` for full parameter documentation.
        """
        return self._request(
            "PATCH", path, params=params, json=json, headers=headers, timeout=timeout
        )

    def delete(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Perform a DELETE request.

        See :meth:`request` for full parameter documentation.
        """
        return self._request("DELETE", path, params=params, headers=headers, timeout=timeout)

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------
    def collect_all(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        embedded_key: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[list]:
        """Perform GET requests page by page and return every item.

        Pages are requested one after the other starting at ``page=1``
        and their items are concatenated in page order.  Fetching stops
        once the next page number would exceed the total page count the
        API reports.

        An empty page response ends the walk early and returns what was
        collected so far, which is ``None`` if nothing was.

        Parameters
        ----------
        path : str
            The paged endpoint, e.g. ``"search/conversations"``.
        params : dict, optional
            Query parameters sent with every page request.
        embedded_key : str, optional
            Name of the collection under ``_embedded``.  Required for
            the ``embedded`` API variant, ignored otherwise.
        """
        self.variant.check_embedded_key(embedded_key)

        query: MutableMapping[str, Any] = dict(params or {})
        collected: list = []
        page = 1
        while True:
            query["page"] = page
            payload = self.get(path, params=query, headers=headers, timeout=timeout)
            if not payload:
                logger.debug("Empty page %s from %s; stopping", page, path)
                return collected or None
            if not isinstance(payload, Mapping):
                raise HelpScoutAPIError(
                    f"Expected a paged JSON object from {path}, got {type(payload).__name__}",
                    status_code=self._last_response.status_code if self._last_response else None,
                    response=self._last_response,
                )

            collected.extend(self.variant.extract_items(payload, embedded_key))
            total_pages = self.variant.total_pages(payload)
            if page + 1 > total_pages:
                return collected
            page += 1

    def search(
        self,
        path: str,
        query: str,
        *,
        embedded_key: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[list]:
        """Run a search query against a paged search endpoint."""
        search_params = dict(params or {})
        search_params["query"] = f"({query})"
        return self.collect_all(
            path, search_params, embedded_key=embedded_key, headers=headers, timeout=timeout
        )

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------
    def create_conversation(self, data: Mapping[str, Any]) -> Optional[str]:
        """Create a conversation and return its ID.

        The ID is read from the trailing digits of the ``Location``
        header of the ``201`` response.  ``None`` is returned if the
        header is missing.
        """
        response = self.request("POST", "conversations", json=data)
        location = response.headers.get("Location")
        match = _TRAILING_ID.search(location or "")
        if match is None:
            logger.warning("Conversation created without a usable Location header: %r", location)
            return None
        return match.group(1)

    def get_conversation(self, conversation_id: Any, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.get(f"conversations/{conversation_id}", params=params)

    def get_conversations(self, mailbox_id: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
        """List one page of conversations for a mailbox.

        ``params`` may carry any filter the list endpoint supports,
        such as ``page``, ``status`` or ``modifiedSince``.
        """
        query = dict(params or {})
        query["mailbox"] = mailbox_id
        return self.get("conversations", params=query)

    def update_conversation(self, conversation_id: Any, data: Mapping[str, Any]) -> Any:
        return self.put(f"conversations/{conversation_id}", json=data)

    def delete_conversation(self, conversation_id: Any) -> Any:
        return self.delete(f"conversations/{conversation_id}")

    def search_conversations(self, query: str) -> Optional[list]:
        """Return every conversation matching a Help Scout search query."""
        return self.search("search/conversations", query, embedded_key="conversations")

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------
    def _create_thread(self, conversation_id: Any, kind: str, body: Mapping[str, Any]) -> bool:
        response = self.request("POST", f"conversations/{conversation_id}/{kind}", json=body)
        return response.status_code == HTTP_CREATED

    def create_chat_thread(self, conversation_id: Any, body: Mapping[str, Any]) -> bool:
        """Add a chat thread; ``True`` if the API answered ``201 Created``."""
        return self._create_thread(conversation_id, "chats", body)

    def create_reply_thread(self, conversation_id: Any, body: Mapping[str, Any]) -> bool:
        return self._create_thread(conversation_id, "reply", body)

    def create_notes_thread(self, conversation_id: Any, body: Mapping[str, Any]) -> bool:
        return self._create_thread(conversation_id, "notes", body)

    def update_thread(
        self,
        conversation_id: Any,
        thread: Mapping[str, Any],
        reload: bool = False,
    ) -> Any:
        """Replace the body of a thread.

        Only ``thread["body"]`` is sent; ``thread["id"]`` addresses the
        thread.  With ``reload=True`` the API returns the whole
        conversation, which is passed back.  Otherwise the result is
        ``True`` when the API answered ``200 OK``.
        """
        params = {"reload": "true"} if reload else None
        response = self.request(
            "PUT",
            f"conversations/{conversation_id}/threads/{thread['id']}",
            json={"body": thread["body"]},
            params=params,
        )
        if reload:
            return response.data
        return response.status_code == HTTP_OK

    def patch_thread(
        self,
        conversation_id: Any,
        thread_id: Any,
        text: Any,
        op: str = "replace",
        path: str = "/text",
    ) -> bool:
        """Apply a single ``{op, path, value}`` change to a thread.

        By default the thread text is replaced with ``text``.
        """
        response = self.request(
            "PATCH",
            f"conversations/{conversation_id}/threads/{thread_id}",
            json={"op": op, "path": path, "value": text},
        )
        return response.status_code in (HTTP_OK, HTTP_NO_CONTENT)

    def list_threads(self, conversation_id: Any) -> Optional[list]:
        """Return every thread of a conversation, across all pages."""
        return self.collect_all(f"conversations/{conversation_id}/threads", embedded_key="threads")

    # ------------------------------------------------------------------
    # Customers, mailboxes and reports
    # ------------------------------------------------------------------
    def get_customer(self, customer_id: Any) -> Any:
        return self.get(f"customers/{customer_id}")

    def update_customer(self, customer_id: Any, data: Mapping[str, Any]) -> Any:
        return self.put(f"customers/{customer_id}", json=data)

    def get_mailboxes(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.get("mailboxes", params=params)

    def reports_user_ratings(
        self,
        user_id: Any,
        rating: int,
        start: Union[_datetime, _date, str],
        end: Union[_datetime, _date, str],
        **filters: Any,
    ) -> Any:
        """Fetch the user ratings report.

        ``rating`` is ``0`` for all ratings, ``1`` for Great, ``2`` for
        Okay and ``3`` for Not Good.  ``start`` and ``end`` may be
        dates, datetimes or preformatted strings.  Extra keyword
        arguments (e.g. ``page``, ``sortField``) are sent as query
        parameters.
        """
        if rating not in (0, 1, 2, 3):
            raise ValueError("rating must be 0, 1, 2 or 3, got %r" % (rating,))
        params = dict(filters)
        params.update(
            user=user_id,
            rating=rating,
            start=to_utc_string(start),
            end=to_utc_string(end),
        )
        return self.get("reports/user/ratings", params=params)
