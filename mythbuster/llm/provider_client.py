from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from mythbuster.errors import NetworkError, ParseError, ProviderError, ProviderTimeout, RateLimited


logger = logging.getLogger("provider_client")


def provider_citations(body: Any) -> list:
    """Citation list attached to the completion, falling back to ``search_results``."""
    if not isinstance(body, dict):
        return []
    citations = body.get("citations")
    if isinstance(citations, list):
        return citations
    results = body.get("search_results")
    if isinstance(results, list):
        return [
            {"title": r.get("title") or "", "url": r.get("url") or ""}
            for r in results
            if isinstance(r, dict)
        ]
    return []


class ProviderClient:
    """Chat-completions client for a search-augmented model endpoint."""

    def __init__(
        self,
        api_url: str,
        model: str,
        search_context: str = "medium",
        timeout: float = 30.0,
        retries: int = 1,
        json_schema: bool = True,
        backoff: float = 0.3,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_url = api_url
        self.model = model
        self.search_context = search_context
        self.timeout = timeout
        self.retries = max(0, retries)
        self.json_schema = json_schema
        self.backoff = backoff
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def build_payload(
        self,
        system_prompt: str,
        user_content: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        schema: dict | None = None,
        model: str | None = None,
    ) -> dict:
        payload: dict[str, Any] = {
            "model": model or self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if schema and self.json_schema:
            payload["response_format"] = {"type": "json_schema", "json_schema": {"schema": schema}}
        if self.search_context:
            payload["web_search_options"] = {"search_context_size": self.search_context}
        return payload

    def _post(self, api_key: str, payload: dict) -> httpx.Response:
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        with self._client() as client:
            return client.post(self.api_url, headers=headers, json=payload)

    def complete(self, api_key: str, payload: dict) -> dict:
        """POST the payload and return the decoded body.

        429/503 and connection failures are retried ``retries`` times. A 400 while a
        ``response_format`` is attached is retried once without it.
        """
        payload = dict(payload)
        attempt = 0
        while True:
            try:
                res = self._post(api_key, payload)
            except httpx.TimeoutException as exc:
                logger.warning("provider timeout after %ss model=%s", self.timeout, payload.get("model"))
                raise ProviderTimeout(f"The AI provider did not respond within {self.timeout:g} seconds.") from exc
            except httpx.TransportError as exc:
                if attempt < self.retries:
                    attempt += 1
                    time.sleep(self.backoff * attempt)
                    continue
                logger.warning("provider unreachable: %s", type(exc).__name__)
                raise NetworkError("Could not reach the AI provider. Please check your connection and try again.") from exc

            if res.status_code in (429, 503) and attempt < self.retries:
                attempt += 1
                logger.info("provider status %s, retry %s", res.status_code, attempt)
                time.sleep(self.backoff * attempt)
                continue
            if res.status_code == 400 and "response_format" in payload:
                logger.info("provider rejected response_format, retrying without schema")
                payload.pop("response_format", None)
                continue
            if res.status_code == 429:
                raise RateLimited(res.text)
            if res.status_code >= 300:
                logger.warning("provider status %s: %s", res.status_code, (res.text or "")[:200])
                raise ProviderError(res.status_code, res.text)
            try:
                return res.json()
            except ValueError as exc:
                raise ParseError("The AI provider returned a body that is not JSON.", (res.text or "")[:200]) from exc

    def ping(self, api_key: str) -> int:
        """Minimal one-token request used to check a credential. Returns the HTTP status."""
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": "Test"}],
            "max_tokens": 1,
        }
        try:
            res = self._post(api_key, payload)
        except httpx.TimeoutException as exc:
            raise ProviderTimeout("Timed out while validating the API key.") from exc
        except httpx.TransportError as exc:
            raise NetworkError("Could not reach the AI provider to validate the API key.") from exc
        return res.status_code
