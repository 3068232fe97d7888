"""
HTTP client for the remote API-key service.

Wraps an httpx.Client authenticated with the admin key and layers a fixed retry
policy on top of per-attempt timeouts. Only two conditions are retried: HTTP 429
and a response body saying the target instance is still starting. Everything
else surfaces immediately as RemoteAPIError or TransportError.
"""

from typing import Any, Dict, Optional

import httpx
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from ..config import RemoteAPISettings, get_config
from ..constants import INSTANCE_STARTING_MARKER
from ..context.request_context import RequestContext
from ..exceptions import (
    ErrorCode,
    OperationCancelledError,
    RemoteAPIError,
    TransportError,
)
from ..schemas.credential_schema import RemoteAPIKey
from ..utils.logger import get_logger

RESPONSE_SNIPPET_LENGTH = 512


def _snippet(text: str) -> str:
    if len(text) <= RESPONSE_SNIPPET_LENGTH:
        return text
    return text[:RESPONSE_SNIPPET_LENGTH] + "..."


def should_retry(response: httpx.Response) -> bool:
    """True for rate limiting or a stack that is not accepting requests yet."""
    return response.status_code == 429 or INSTANCE_STARTING_MARKER in response.text


class RemoteAPIClient:
    """
    Authenticated client for creating and deleting remote API keys.

    Instances are cheap to use concurrently; the underlying httpx.Client is
    thread-safe. One instance is cached per configuration generation.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        settings: Optional[RemoteAPISettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            base_url: Root URL of the remote API; a trailing "/" is appended if missing
            api_key: Admin key sent as a bearer token
            settings: Timeout and retry policy (default: global config)
            transport: Optional httpx transport, used by tests to fake the remote service
        """
        self.settings = settings or get_config().remote_api
        self.logger = get_logger()

        url = base_url or ""
        if not url.endswith("/"):
            url = url + "/"
        self.base_url = url

        headers = {"Authorization": f"Bearer {api_key}"}
        if self.settings.user_agent:
            headers["User-Agent"] = self.settings.user_agent

        event_hooks: Dict[str, Any] = {}
        if self.settings.http_debug:
            event_hooks = {"request": [self._log_request], "response": [self._log_response]}

        client_kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": httpx.Timeout(self.settings.timeout_seconds),
            "event_hooks": event_hooks,
        }
        if transport is not None:
            client_kwargs["transport"] = transport

        # An empty base URL is accepted so a client can be built from an empty config
        self.has_base_url = url != "/"
        if self.has_base_url:
            client_kwargs["base_url"] = url

        self._client = httpx.Client(**client_kwargs)

    def _log_request(self, request: httpx.Request) -> None:
        self.logger.debug(
            "Remote API request", extra={"method": request.method, "url": str(request.url)}
        )

    def _log_response(self, response: httpx.Response) -> None:
        self.logger.debug(
            "Remote API response",
            extra={
                "method": response.request.method,
                "url": str(response.request.url),
                "status_code": response.status_code,
            },
        )

    def _attempt_timeout(self, ctx: RequestContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self.settings.timeout_seconds
        return min(self.settings.timeout_seconds, remaining)

    def _send(
        self,
        method: str,
        path: str,
        error_message: str,
        ctx: Optional[RequestContext] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        ctx = ctx or RequestContext.background()
        operation = f"{method} {path}"

        if not self.has_base_url:
            raise TransportError(
                f"{error_message}: no remote API URL configured",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                method=method,
                path=path,
            )

        def attempt() -> httpx.Response:
            ctx.check(operation)
            try:
                return self._client.request(
                    method, path, json=json_body, timeout=self._attempt_timeout(ctx)
                )
            except httpx.TimeoutException as e:
                if ctx.expired:
                    raise OperationCancelledError(
                        f"{operation} deadline exceeded", operation=operation, reason="deadline"
                    )
                raise TransportError(
                    f"{error_message}: request timed out",
                    error_code=ErrorCode.TIMEOUT_ERROR,
                    status_code=504,
                    cause=e,
                    method=method,
                    path=path,
                )
            except httpx.RequestError as e:
                raise TransportError(
                    f"{error_message}: {type(e).__name__}",
                    cause=e,
                    method=method,
                    path=path,
                )

        max_attempts = self.settings.max_attempts

        def log_retry(retry_state: RetryCallState) -> None:
            response = retry_state.outcome.result()
            self.logger.warning(
                f"Retrying {method} to `{response.request.url}` because of response: "
                f"{_snippet(response.text)}",
                extra={
                    "method": method,
                    "url": str(response.request.url),
                    "status_code": response.status_code,
                    "attempt": retry_state.attempt_number,
                    "max_attempts": max_attempts,
                },
            )

        # Exceptions raised by an attempt are never retried; only responses are inspected
        retrying = Retrying(
            retry=retry_if_result(should_retry),
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(self.settings.retry_wait_seconds),
            sleep=lambda seconds: ctx.wait(seconds, operation),
            before_sleep=log_retry,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        response = retrying(attempt)

        if response.is_error:
            error_code = ErrorCode.RATE_LIMITED if response.status_code == 429 else ErrorCode.EXTERNAL_API_ERROR
            raise RemoteAPIError(
                f"{error_message}. Status code {response.status_code}, response: {_snippet(response.text)}",
                status_code=response.status_code,
                body=response.text,
                error_code=error_code,
                method=method,
                path=path,
            )

        return response

    def create_key(
        self,
        organisation: str,
        name: str,
        role: str,
        ctx: Optional[RequestContext] = None,
    ) -> RemoteAPIKey:
        """
        Create an API key with the given role in the organisation.

        Raises:
            RemoteAPIError: Non-retryable or retry-exhausted HTTP error, or an unreadable body
            TransportError: Network failure or timeout
            OperationCancelledError: The request context was cancelled or expired
        """
        error_message = "failed to create remote API key"
        response = self._send(
            "POST",
            f"orgs/{organisation}/api-keys",
            error_message,
            ctx=ctx,
            json_body={"name": name, "role": role},
        )

        try:
            return RemoteAPIKey.model_validate(response.json())
        except ValueError as e:
            raise RemoteAPIError(
                f"{error_message}: unexpected response body",
                status_code=response.status_code,
                body=_snippet(response.text),
                cause=e,
            )

    def delete_key(
        self, organisation: str, name: str, ctx: Optional[RequestContext] = None
    ) -> None:
        """Delete the named API key; a remote not-found is reported like any other error."""
        self._send(
            "DELETE",
            f"orgs/{organisation}/api-keys/{name}",
            "failed to delete remote API key",
            ctx=ctx,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
