"""
Generic async HTTP adapter for completion backends.

Each backend family subclasses BackendAdapter and supplies only its wire
format: request headers/params/payload and response text extraction. The
base class owns the HTTP call (httpx, no vendor SDKs) and the translation of
every failure into a classified CompletionError:

- 429 -> RateLimited
- 401 / 403 -> AuthInvalid
- other non-2xx, transport errors, timeouts -> TransientFailure
- 2xx without completion text -> MalformedResponse
"""
import time
from typing import Any, Dict, Optional

import httpx

from chatbot.core.logging import get_logger
from chatbot.services.ai.errors import (
    AuthInvalid,
    MalformedResponse,
    RateLimited,
    TransientFailure,
)
from chatbot.services.ai.schema import AdapterResponse, BackendConfig, BackendId

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class BackendAdapter:
    """Async HTTP adapter for one completion backend."""

    # Human label used in error messages, e.g. "Groq API"
    api_label: str = "Backend API"

    def __init__(
        self,
        config: BackendConfig,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def backend_id(self) -> BackendId:
        return self.config.id

    # ------------------------------------------------------------------
    # Wire format hooks
    # ------------------------------------------------------------------

    def build_headers(self, credential: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
        }

    def build_params(self, credential: str) -> Optional[Dict[str, str]]:
        return None

    def build_payload(self, text: str, model: str) -> Dict[str, Any]:
        raise NotImplementedError

    def extract_text(self, data: Any) -> str:
        """Pull completion text out of a decoded 2xx body; may raise KeyError/IndexError/TypeError."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    async def complete(self, text: str, credential: str) -> AdapterResponse:
        """
        Obtain a completion for `text`.

        Raises:
            RateLimited, AuthInvalid, TransientFailure (incl. MalformedResponse)
        """
        content = await self._request_completion(text, credential, self.config.model)
        return AdapterResponse(text=content, model=self.config.model)

    async def _post(
        self,
        url: str,
        headers: Dict[str, str],
        json_payload: Dict[str, Any],
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Low-level POST helper; one client per call so cancellation closes the connection."""
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self._transport,
        ) as client:
            return await client.post(url, headers=headers, params=params, json=json_payload)

    async def _request_completion(self, text: str, credential: str, model: str) -> str:
        """Send one request for `model` and return its stripped completion text."""
        payload = self.build_payload(text, model)
        start = time.time()
        try:
            response = await self._post(
                self.config.endpoint,
                headers=self.build_headers(credential),
                json_payload=payload,
                params=self.build_params(credential),
            )
        except httpx.TimeoutException as exc:
            logger.warning(
                "backend_timeout",
                backend=self.backend_id.value,
                model=model,
                timeout_seconds=self.timeout_seconds,
                error_type=type(exc).__name__,
            )
            raise TransientFailure(
                f"{self.api_label} request timed out after {self.timeout_seconds:g}s",
                backend=self.backend_id.value,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "backend_http_error",
                backend=self.backend_id.value,
                model=model,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise TransientFailure(
                f"{self.api_label} transport error: {exc}",
                backend=self.backend_id.value,
            ) from exc
        finally:
            logger.debug(
                "backend_request_finished",
                backend=self.backend_id.value,
                model=model,
                duration_ms=round((time.time() - start) * 1000.0, 1),
            )

        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponse(
                f"{self.api_label} returned a non-JSON body",
                backend=self.backend_id.value,
                status_code=response.status_code,
            ) from exc

        try:
            content = self.extract_text(data)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise MalformedResponse(
                f"{self.api_label} response did not contain completion text",
                backend=self.backend_id.value,
                status_code=response.status_code,
            ) from exc

        if not isinstance(content, str) or not content.strip():
            raise MalformedResponse(
                f"{self.api_label} returned an empty completion",
                backend=self.backend_id.value,
                status_code=response.status_code,
            )
        return content.strip()

    # ------------------------------------------------------------------
    # Error classification
    # ------------------------------------------------------------------

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        detail = self._error_detail(response)
        backend = self.backend_id.value

        if status == 429:
            raise RateLimited(self.rate_limit_message(detail), backend=backend, status_code=status)
        if status in (401, 403):
            raise AuthInvalid(self.auth_message(detail), backend=backend, status_code=status)
        raise TransientFailure(
            f"{self.api_label} error: {status} {response.reason_phrase} - {detail}",
            backend=backend,
            status_code=status,
        )

    def rate_limit_message(self, detail: str) -> str:
        return (
            f"{self.api_label} rate limit exceeded. "
            f"{self.config.display_name} will be skipped for the next few minutes. "
            f"Error: {detail}"
        )

    def auth_message(self, detail: str) -> str:
        return (
            f"{self.api_label} key has expired or is invalid. "
            f"Please renew the key or select another AI provider. Error: {detail}"
        )

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        """Best-effort human-readable error text from a failed response."""
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase

        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        return str(data)[:200]
