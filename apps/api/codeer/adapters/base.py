from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

JUDGE_STATUS_ACCEPTED = 3
JUDGE_STATUS_TIME_LIMIT = 5


@dataclass(frozen=True)
class WebsiteFile:
    path: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class RepositoryInfo:
    name: str
    full_name: str
    html_url: str


@dataclass(frozen=True)
class ZoneCredentials:
    zone_id: str
    api_token: str


@dataclass(frozen=True)
class JudgeRequest:
    source_code: str
    language_id: int
    stdin: str
    expected_output: str
    cpu_time_limit: float
    memory_limit: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "source_code": self.source_code,
            "language_id": self.language_id,
            "stdin": self.stdin,
            "expected_output": self.expected_output,
            "cpu_time_limit": self.cpu_time_limit,
            "memory_limit": self.memory_limit,
        }


@dataclass(frozen=True)
class Verdict:
    status_id: int | None
    status_description: str
    runtime_ms: int | None
    memory_kb: int | None
    stdout: str
    stderr: str
    compile_output: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Verdict":
        status_raw = payload.get("status") or {}
        time_raw = payload.get("time")
        memory_raw = payload.get("memory")
        return cls(
            status_id=status_raw.get("id"),
            status_description=str(status_raw.get("description") or "Unknown"),
            runtime_ms=round(float(time_raw) * 1000) if time_raw not in (None, "") else None,
            memory_kb=int(memory_raw) if memory_raw not in (None, "") else None,
            stdout=payload.get("stdout") or "",
            stderr=payload.get("stderr") or "",
            compile_output=payload.get("compile_output") or "",
        )


class RepositoryHost(Protocol):
    async def create_repository(self, name: str, description: str) -> RepositoryInfo | None:
        ...

    async def upload_files(self, repo_name: str, files: Sequence[WebsiteFile]) -> list[str]:
        ...

    async def enable_hosting(self, repo_name: str, custom_domain: str | None = None) -> str | None:
        ...


class DnsProvider(Protocol):
    async def subdomain_exists(self, subdomain: str, domain: str) -> bool:
        ...

    async def create_subdomain(self, subdomain: str, domain: str, owner: str, repo_name: str) -> bool:
        ...

    async def create_donated_subdomain(
        self, subdomain: str, domain: str, target: str, credentials: ZoneCredentials
    ) -> bool:
        ...


class DonatedDomainRegistry(Protocol):
    async def get_domain(self, domain_id: int) -> Any | None:
        ...

    async def check_availability(self, domain_id: int, subdomain: str) -> bool:
        ...

    async def reserve_subdomain(self, domain_id: int, page_id: int, subdomain: str) -> bool:
        ...

    async def release_reservation(self, domain_id: int, subdomain: str) -> None:
        ...

    async def get_credentials(self, domain_id: int) -> ZoneCredentials | None:
        ...


class Judge(Protocol):
    async def submit_batch(self, requests: Sequence[JudgeRequest]) -> list[Verdict]:
        ...
