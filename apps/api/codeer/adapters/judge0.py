from __future__ import annotations

from collections.abc import Sequence

import httpx

from codeer.adapters.base import JudgeRequest, Verdict
from codeer.config import Judge0Settings
from codeer.errors import JudgeUnavailable
from codeer.observability import get_logger, log_event

logger = get_logger("codeer.adapters.judge0")


class Judge0Client:
    def __init__(self, settings: Judge0Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["X-RapidAPI-Key"] = self.settings.api_key
        if self.settings.api_host:
            headers["X-RapidAPI-Host"] = self.settings.api_host
        return headers

    async def submit_batch(self, requests: Sequence[JudgeRequest]) -> list[Verdict]:
        """Run every request and block until all verdicts are back, in input order."""
        body = {"submissions": [request.to_payload() for request in requests]}
        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self.settings.url,
                    params={"base64_encoded": "false", "wait": "true"},
                    json=body,
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            log_event(logger, "judge0.request_failed", error=str(exc))
            raise JudgeUnavailable("Code execution service unavailable") from exc

        if response.is_error:
            log_event(logger, "judge0.request_failed", status_code=response.status_code)
            raise JudgeUnavailable("Code execution service unavailable")

        try:
            payload = response.json()
            if isinstance(payload, dict):
                payload = payload.get("submissions", [])
            return [Verdict.from_payload(item) for item in payload]
        except (ValueError, TypeError, AttributeError) as exc:
            raise JudgeUnavailable("Code execution service returned an unreadable response") from exc
