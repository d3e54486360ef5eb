from __future__ import annotations

from typing import Any


class CodeerError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def context(self) -> dict[str, Any]:
        return {}


class ValidationError(CodeerError):
    status_code = 400


class InvalidFormat(ValidationError):
    pass


class MissingEntryPoint(ValidationError):
    pass


class SizeLimitExceeded(ValidationError):
    status_code = 413


class UnsupportedLanguage(ValidationError):
    pass


class Conflict(CodeerError):
    status_code = 409


class NotFound(CodeerError):
    status_code = 404


class UpstreamUnavailable(CodeerError):
    status_code = 503


class JudgeUnavailable(UpstreamUnavailable):
    pass


class InternalError(CodeerError):
    status_code = 500


class PublishFailed(InternalError):
    """A publish run failed after its page record was written.

    The page and deployment were already marked ``error``/``failed``.
    """

    def __init__(self, reason: str, *, page_id: int, deployment_id: int | None, stage: str) -> None:
        super().__init__(f"Failed to create page: {reason}")
        self.reason = reason
        self.page_id = page_id
        self.deployment_id = deployment_id
        self.stage = stage

    def context(self) -> dict[str, Any]:
        return {
            "page_id": self.page_id,
            "deployment_id": self.deployment_id,
            "stage": self.stage,
            "status": "error",
            "deployment_status": "failed",
            "reason": self.reason,
        }
