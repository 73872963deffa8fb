"""
Internal Utilities for Connector Modules.

This module contains the helpers shared by every module of `rcsb_biokit` that
talks to the RCSB web services:

- The HTTP request wrapper (consistent error handling, fixed-delay retries,
  timeout settings and the package User-Agent).
- A JSON decoding helper that turns an unreadable body into a typed error.
- The exception hierarchy raised throughout the package.

The leading underscore in the filename (`_utils.py`) indicates that this
is an internal implementation detail; the exception classes are re-exported
from `rcsb_biokit` for callers.
"""

import time
import logging
import requests
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)

# Default RCSB Biokit User-Agent
RCSB_BIOKIT_USER_AGENT = "RCSB-Biokit/0.1 (https://github.com/rcsb-biokit/rcsb-biokit)"


class RCSBError(Exception):
    """Base class for every error raised by rcsb_biokit."""


class APIRequestError(RCSBError):
    """Custom exception for network failures and non-success HTTP statuses."""
    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    def __str__(self) -> str:
        return f"APIRequestError: {super().__str__()} (Status: {self.status_code}, URL: {self.url})"


class GraphQLQueryError(APIRequestError):
    """The GraphQL endpoint answered with an ``errors`` array."""
    def __init__(self, messages: List[str], url: Optional[str] = None):
        self.messages = list(messages)
        super().__init__("GraphQL query failed: " + "; ".join(self.messages), url=url)


class MalformedResponseError(RCSBError):
    """The request succeeded but the body does not have the expected shape."""


class UnsupportedMappingError(RCSBError, ValueError):
    """A return type, filetype, query type or enum name has no known mapping."""


class InvalidInputError(RCSBError, ValueError):
    """An argument has the wrong shape; raised before any network call."""


class AmbiguousSequenceTypeError(InvalidInputError):
    """A sequence could not be classified as DNA, RNA or protein."""


class CannotInferSearchServiceError(InvalidInputError):
    """A search operator does not belong to any known search service."""


class NotFoundError(RCSBError):
    """A requested chain or identifier is absent from the data."""


class MissingIDsError(NotFoundError, MalformedResponseError):
    """Some requested IDs are absent from a GraphQL fetch response."""
    def __init__(self, missing_ids: List[str]):
        self.missing_ids = list(missing_ids)
        super().__init__(
            f"One or more IDs could not be retrieved: {', '.join(self.missing_ids)}"
        )


def _upstream_message(response: requests.Response) -> str:
    """Best-effort error message from an RCSB error body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or (response.reason or "")
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text.strip()


def make_api_request(
    url: str,
    method: str = "GET",
    params: Optional[Dict[str, Any]] = None,
    json_data: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: int = 30, # seconds
    retries: int = 0,
    delay: float = 0.5, # seconds between retries
    stream: bool = False
) -> requests.Response:
    """Makes an HTTP request with error handling and optional retries.

    Args:
        url (str): The URL for the request.
        method (str, optional): HTTP method (GET, POST, etc.). Defaults to "GET".
        params (Optional[Dict[str, Any]], optional): URL parameters. Defaults to None.
        json_data (Optional[Dict[str, Any]], optional): JSON data to send in the body. Defaults to None.
        headers (Optional[Dict[str, str]], optional): HTTP headers. Defaults to None.
                                                   A default User-Agent is added if not provided.
        timeout (int, optional): Request timeout in seconds. Defaults to 30.
        retries (int, optional): Extra attempts after a transport or status failure. Defaults to 0.
        delay (float, optional): Fixed delay in seconds between attempts. Defaults to 0.5.
        stream (bool, optional): If True, the response content will not be immediately downloaded.
                                 Defaults to False.

    Returns:
        requests.Response: The response object (always a 2xx status).

    Raises:
        APIRequestError: If the request still fails after all attempts.
    """
    effective_headers = {"User-Agent": RCSB_BIOKIT_USER_AGENT}
    if headers:
        effective_headers.update(headers)

    last_error: Optional[APIRequestError] = None
    for attempt in range(retries + 1):
        if attempt:
            logger.warning(f"Retrying {method.upper()} {url} ({attempt + 1}/{retries + 1}) after: {last_error}")
            time.sleep(delay)
        try:
            logger.debug(f"{method.upper()} {url}")
            response = requests.request(
                method=method.upper(),
                url=url,
                params=params,
                json=json_data,
                headers=effective_headers,
                timeout=timeout,
                stream=stream
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            last_error = APIRequestError(f"Request failed: {type(e).__name__}: {e}", url=url)
            last_error.__cause__ = e
            continue
        except requests.exceptions.RequestException as e: # Catch any other request-related errors
            last_error = APIRequestError(f"Unexpected request error: {type(e).__name__}: {e}", url=url)
            last_error.__cause__ = e
            continue

        if 200 <= response.status_code < 300:
            return response

        last_error = APIRequestError(
            f"HTTP {response.status_code}: {_upstream_message(response)}",
            status_code=response.status_code,
            url=url
        )

    assert last_error is not None
    raise last_error


def parse_json_response(response: requests.Response) -> Any:
    """Decode a JSON body.

    Raises:
        MalformedResponseError: If the body is not valid JSON.
    """
    try:
        return response.json()
    except ValueError as e:
        raise MalformedResponseError(
            f"Response from {response.url} is not valid JSON: {e}"
        ) from e
