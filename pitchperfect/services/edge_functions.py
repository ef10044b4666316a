"""HTTP invoker for hosted edge functions.

All remote work (generation, transcription, speech, scraping, document
parsing, simulator turns, scoring) runs behind
``{SUPABASE_URL}/functions/v1/<name>``.
"""

from typing import Any

import httpx

from pitchperfect.core.config import get_settings
from pitchperfect.core.logging import get_logger

logger = get_logger(__name__)


class EdgeFunctionError(Exception):
    """Raised when an edge function call fails or reports an error."""

    def __init__(self, function: str, message: str, status_code: int | None = None):
        self.function = function
        self.status_code = status_code
        super().__init__(f"{function}: {message}")


def _build_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


def _function_url(name: str) -> str:
    settings = get_settings()
    return f"{settings.SUPABASE_URL.rstrip('/')}/functions/v1/{name}"


def _headers(access_token: str | None = None) -> dict[str, str]:
    key = get_settings().edge_function_key
    return {"Authorization": f"Bearer {access_token or key}", "apikey": key}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


async def _post(
    name: str,
    json_body: dict[str, Any] | None = None,
    files: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
    timeout: float | None = None,
    access_token: str | None = None,
) -> httpx.Response:
    request_timeout = timeout or get_settings().EDGE_FUNCTION_TIMEOUT

    try:
        async with _build_client(request_timeout) as client:
            logger.debug(f"Invoking edge function: {name}")
            response = await client.post(
                _function_url(name),
                headers=_headers(access_token),
                json=json_body if files is None else None,
                files=files,
                data=data,
            )
    except httpx.TimeoutException as e:
        raise EdgeFunctionError(name, "request timed out") from e
    except httpx.RequestError as e:
        raise EdgeFunctionError(name, f"request failed: {e}") from e

    if response.is_error:
        message = _error_message(response)
        logger.warning(f"Edge function {name} returned {response.status_code}: {message}")
        raise EdgeFunctionError(name, message, response.status_code)

    return response


async def invoke_function(
    name: str,
    json_body: dict[str, Any] | None = None,
    files: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
    timeout: float | None = None,
    access_token: str | None = None,
) -> dict[str, Any]:
    """
    Call an edge function and return its JSON object body.

    ``access_token`` authenticates the call as a signed-in user instead of
    the project key.

    Raises:
        EdgeFunctionError: On transport failure, non-2xx status, a non-object
            body, or a body carrying an ``error`` field
    """
    response = await _post(
        name,
        json_body=json_body,
        files=files,
        data=data,
        timeout=timeout,
        access_token=access_token,
    )

    try:
        body = response.json()
    except ValueError as e:
        raise EdgeFunctionError(name, "response was not valid JSON", response.status_code) from e

    if not isinstance(body, dict):
        raise EdgeFunctionError(name, "unexpected response format", response.status_code)
    if body.get("error"):
        raise EdgeFunctionError(name, str(body["error"]), response.status_code)
    return body


async def invoke_function_bytes(
    name: str, json_body: dict[str, Any], timeout: float | None = None
) -> bytes:
    """Call an edge function that returns binary content (e.g. audio)."""
    response = await _post(name, json_body=json_body, timeout=timeout)
    if not response.content:
        raise EdgeFunctionError(name, "empty response body", response.status_code)
    return response.content
