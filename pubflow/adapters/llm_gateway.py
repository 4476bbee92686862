"""
HTTP adapter for the multi-provider LLM invocation endpoint.

Request:  {provider, model, prompt|messages, system_prompt?, temperature?,
           max_tokens?, content_id?, agent_name?}
Response: {content, usage: {input_tokens, output_tokens}, model, cost}
Errors:   non-2xx with {error, message}
"""

from __future__ import annotations

import logging

import httpx

from pubflow.components.costs import GatewayReply, LLMCallError, LLMRequest

logger = logging.getLogger(__name__)


class HttpLLMGateway:
    """LLMGatewayPort over HTTP."""

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 120.0,
        api_key: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            self._client.close()

    def invoke(self, request: LLMRequest) -> GatewayReply:
        try:
            response = self._client.post(
                self._endpoint, json=request.to_payload(), headers=self._headers
            )
        except httpx.TimeoutException as e:
            raise LLMCallError("timeout", f"LLM call timed out: {e}") from e
        except httpx.HTTPError as e:
            raise LLMCallError("network_error", str(e)) from e

        if not response.is_success:
            error, message = "http_error", response.text[:500]
            try:
                body = response.json()
                error = body.get("error", error)
                message = body.get("message", message)
            except ValueError:
                pass
            logger.warning(
                "LLM call %s/%s failed with %s: %s",
                request.provider,
                request.model,
                response.status_code,
                error,
            )
            raise LLMCallError(str(error), str(message), response.status_code)

        try:
            data = response.json()
            usage = data.get("usage") or {}
            return GatewayReply(
                content=data["content"],
                model=data.get("model", request.model),
                input_tokens=int(usage.get("input_tokens", 0)),
                output_tokens=int(usage.get("output_tokens", 0)),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise LLMCallError("bad_response", f"Malformed LLM response: {e}") from e
