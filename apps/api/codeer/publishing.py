"""Publishing a user's static site as a custom-hosted page.

One ``PagePublisher.publish`` call drives a single linear run:

    validating -> checking_availability -> creating_record
    -> creating_deployment_record -> creating_repo -> uploading_files
    -> enabling_hosting [-> reserving_subdomain] -> binding_dns
    -> finalizing -> done

Once the page record exists, any failed step sends the run to
``rolling_back -> failed``. Rollback marks the page and deployment as failed
and records the reason. It does not delete the repository or DNS records
created so far; an operator cleans those up. The only undo is releasing a
donated-domain reservation taken during the same run.

Publishing is not idempotent. The page row keeps its (subdomain, domain)
slot even after a failed run, so a retry for the same slot gets ``Conflict``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, TypeVar

from codeer.adapters.base import DnsProvider, DonatedDomainRegistry, RepositoryHost, RepositoryInfo, WebsiteFile
from codeer.config import PAGE_MAX_TOTAL_BYTES
from codeer.errors import CodeerError, Conflict, InternalError, NotFound, PublishFailed, ValidationError
from codeer.models import DeploymentStatus, Page, PageStatus
from codeer.observability import get_logger, log_event, log_failure
from codeer.records import PageRecords
from codeer.validation import build_repo_name, validate_subdomain, validate_website_files

logger = get_logger("codeer.publishing")

T = TypeVar("T")


class PublishStage(StrEnum):
    VALIDATING = "validating"
    CHECKING_AVAILABILITY = "checking_availability"
    CREATING_RECORD = "creating_record"
    CREATING_DEPLOYMENT_RECORD = "creating_deployment_record"
    CREATING_REPO = "creating_repo"
    UPLOADING_FILES = "uploading_files"
    ENABLING_HOSTING = "enabling_hosting"
    RESERVING_SUBDOMAIN = "reserving_subdomain"
    BINDING_DNS = "binding_dns"
    FINALIZING = "finalizing"
    DONE = "done"
    ROLLING_BACK = "rolling_back"
    FAILED = "failed"


@dataclass(frozen=True)
class PublishRequest:
    user_id: int
    title: str
    subdomain: str
    domain: str
    files: Sequence[WebsiteFile]
    donated_domain_id: int | None = None


@dataclass(frozen=True)
class PublishResult:
    page_id: int
    deployment_id: int
    title: str
    full_domain: str
    repository_url: str
    hosting_url: str
    final_url: str
    status: str
    uploaded_files: int


class PublishStepFailed(Exception):
    def __init__(self, stage: PublishStage, reason: str) -> None:
        super().__init__(reason)
        self.stage = stage
        self.reason = reason


@dataclass
class _PublishRun:
    request: PublishRequest
    stage: PublishStage = PublishStage.VALIDATING
    domain: str = ""
    repo_name: str = ""
    page_id: int | None = None
    deployment_id: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    reserved: bool = False
    history: list[PublishStage] = field(default_factory=list)

    @property
    def full_domain(self) -> str:
        return f"{self.request.subdomain}.{self.domain}"


class PagePublisher:
    def __init__(
        self,
        *,
        records: PageRecords,
        repo_host: RepositoryHost,
        dns: DnsProvider,
        registry: DonatedDomainRegistry,
        default_domains: Sequence[str],
        hosting_owner: str,
        max_total_bytes: int = PAGE_MAX_TOTAL_BYTES,
    ) -> None:
        self.records = records
        self.repo_host = repo_host
        self.dns = dns
        self.registry = registry
        self.default_domains = frozenset(domain.lower() for domain in default_domains)
        self.hosting_owner = hosting_owner
        self.max_total_bytes = max_total_bytes

    async def publish(self, request: PublishRequest) -> PublishResult:
        run = _PublishRun(request=request)

        self._advance(run, PublishStage.VALIDATING)
        self._validate(request)

        self._advance(run, PublishStage.CHECKING_AVAILABILITY)
        run.domain = await self._check_availability(request)
        run.repo_name = build_repo_name(request.subdomain, run.domain)

        self._advance(run, PublishStage.CREATING_RECORD)
        page = await self._create_page_record(run)
        run.page_id = page.id
        run.metadata = dict(page.metadata_json or {})

        try:
            repo, uploaded, hosting_url = await self._drive(run)
        except PublishStepFailed as exc:
            await self._roll_back(run, exc)
            raise PublishFailed(
                exc.reason, page_id=page.id, deployment_id=run.deployment_id, stage=exc.stage.value
            ) from exc

        return await self._finalize(run, repo, uploaded, hosting_url)

    def _advance(self, run: _PublishRun, stage: PublishStage) -> None:
        run.stage = stage
        run.history.append(stage)
        log_event(
            logger,
            "publish.stage",
            stage=stage.value,
            page_id=run.page_id,
            subdomain=run.request.subdomain,
            user_id=run.request.user_id,
        )

    def _validate(self, request: PublishRequest) -> None:
        if not request.title.strip():
            raise ValidationError("Missing required fields: title")
        validate_subdomain(request.subdomain)
        validate_website_files(request.files, self.max_total_bytes)

    async def _check_availability(self, request: PublishRequest) -> str:
        if request.donated_domain_id is not None:
            donated = await self.registry.get_domain(request.donated_domain_id)
            if donated is None:
                raise NotFound("Donated domain not found or unavailable")
            if not await self.registry.check_availability(request.donated_domain_id, request.subdomain):
                raise Conflict(f"Subdomain {request.subdomain} is not available on the selected donated domain")
            return donated.domain_name

        domain = request.domain.strip().lower()
        if domain not in self.default_domains:
            raise ValidationError(f"Unsupported domain: {request.domain}")
        if await self.records.slot_taken(request.subdomain, domain):
            raise Conflict(f"Subdomain {request.subdomain}.{domain} is not available")
        if await self.dns.subdomain_exists(request.subdomain, domain):
            raise Conflict(f"Subdomain {request.subdomain}.{domain} is not available")
        return domain

    async def _create_page_record(self, run: _PublishRun) -> Page:
        request = run.request
        donated = request.donated_domain_id is not None
        try:
            return await self.records.create_page(
                user_id=request.user_id,
                title=request.title,
                subdomain=request.subdomain,
                domain=run.domain,
                github_repo=f"{self.hosting_owner}/{run.repo_name}",
                file_count=len(request.files),
                repo_size=sum(file.size for file in request.files),
                donated_domain_id=request.donated_domain_id,
                metadata={
                    "description": f"Personal website: {request.title}",
                    "tags": ["personal", "website"],
                    "file_names": [file.path for file in request.files],
                    "using_donated_domain": donated,
                    "donated_domain_name": run.domain if donated else None,
                },
            )
        except Conflict:
            raise
        except Exception as exc:
            log_failure(logger, "publish.record_failed", subdomain=request.subdomain, domain=run.domain)
            raise InternalError("Failed to create page record") from exc

    async def _step(
        self,
        run: _PublishRun,
        stage: PublishStage,
        action: Callable[[], Awaitable[T]],
        failure_message: str,
    ) -> T:
        self._advance(run, stage)
        try:
            result = await action()
        except PublishStepFailed:
            raise
        except CodeerError as exc:
            raise PublishStepFailed(stage, exc.message) from exc
        except Exception as exc:
            log_failure(logger, "publish.step_error", stage=stage.value, page_id=run.page_id)
            raise PublishStepFailed(stage, f"{failure_message}: {exc}") from exc

        if not result:
            raise PublishStepFailed(stage, failure_message)
        return result

    async def _drive(self, run: _PublishRun) -> tuple[RepositoryInfo, list[str], str]:
        request = run.request
        run.deployment_id = await self._step(
            run,
            PublishStage.CREATING_DEPLOYMENT_RECORD,
            lambda: self.records.create_deployment(run.page_id, len(request.files)),
            "Failed to create deployment record",
        )
        repo = await self._step(
            run,
            PublishStage.CREATING_REPO,
            lambda: self._create_repository(run),
            "Failed to create GitHub repository",
        )
        uploaded = await self._step(
            run,
            PublishStage.UPLOADING_FILES,
            lambda: self.repo_host.upload_files(run.repo_name, request.files),
            "Failed to upload files to repository",
        )
        hosting_url = await self._step(
            run,
            PublishStage.ENABLING_HOSTING,
            lambda: self.repo_host.enable_hosting(run.repo_name, run.full_domain),
            "Failed to enable GitHub Pages",
        )

        if request.donated_domain_id is not None:
            await self._step(
                run,
                PublishStage.RESERVING_SUBDOMAIN,
                lambda: self.registry.reserve_subdomain(request.donated_domain_id, run.page_id, request.subdomain),
                "Failed to reserve subdomain on donated domain",
            )
            run.reserved = True
            await self._step(
                run,
                PublishStage.BINDING_DNS,
                lambda: self._bind_donated_dns(run),
                "Failed to create DNS record",
            )
        else:
            await self._step(
                run,
                PublishStage.BINDING_DNS,
                lambda: self.dns.create_subdomain(request.subdomain, run.domain, self.hosting_owner, run.repo_name),
                "Failed to create DNS record",
            )

        return repo, uploaded, hosting_url

    async def _create_repository(self, run: _PublishRun) -> RepositoryInfo | None:
        await self.records.update_page_status(run.page_id, PageStatus.CREATING, DeploymentStatus.BUILDING)
        return await self.repo_host.create_repository(run.repo_name, f"Personal website: {run.request.title}")

    async def _bind_donated_dns(self, run: _PublishRun) -> bool:
        credentials = await self.registry.get_credentials(run.request.donated_domain_id)
        if credentials is None:
            raise PublishStepFailed(PublishStage.BINDING_DNS, "Failed to get credentials for donated domain")
        return await self.dns.create_donated_subdomain(
            run.request.subdomain,
            run.domain,
            f"{self.hosting_owner}.github.io",
            credentials,
        )

    async def _roll_back(self, run: _PublishRun, failure: PublishStepFailed) -> None:
        self._advance(run, PublishStage.ROLLING_BACK)
        log_event(
            logger,
            "publish.failed",
            page_id=run.page_id,
            deployment_id=run.deployment_id,
            stage=failure.stage.value,
            reason=failure.reason,
            stages=[stage.value for stage in run.history],
        )

        if run.reserved:
            try:
                await self.registry.release_reservation(run.request.donated_domain_id, run.request.subdomain)
            except Exception:
                log_failure(logger, "publish.release_failed", page_id=run.page_id)

        failed_metadata = {
            **run.metadata,
            "error_message": failure.reason,
            "failed_at": datetime.now(timezone.utc).isoformat(),
            "failed_stage": failure.stage.value,
        }
        try:
            await self.records.update_page_status(
                run.page_id, PageStatus.ERROR, DeploymentStatus.FAILED, {"metadata_json": failed_metadata}
            )
        except Exception:
            log_failure(logger, "publish.mark_page_failed", page_id=run.page_id)

        if run.deployment_id is not None:
            try:
                await self.records.update_deployment(run.deployment_id, DeploymentStatus.FAILED, failure.reason)
            except Exception:
                log_failure(logger, "publish.mark_deployment_failed", deployment_id=run.deployment_id)

        self._advance(run, PublishStage.FAILED)

    async def _finalize(
        self, run: _PublishRun, repo: RepositoryInfo, uploaded: list[str], hosting_url: str
    ) -> PublishResult:
        self._advance(run, PublishStage.FINALIZING)
        final_url = f"https://{run.full_domain}"
        metadata = {**run.metadata, "uploaded_files": len(uploaded), "repository_url": repo.html_url}

        # No rollback here: hosting and DNS are already live.
        try:
            await self.records.update_page_status(
                run.page_id,
                PageStatus.ACTIVE,
                DeploymentStatus.DEPLOYED,
                {"github_pages_url": hosting_url, "custom_domain_url": final_url, "metadata_json": metadata},
            )
            await self.records.update_deployment(run.deployment_id, DeploymentStatus.DEPLOYED)
        except Exception as exc:
            log_failure(logger, "publish.finalize_failed", page_id=run.page_id, deployment_id=run.deployment_id)
            raise InternalError(f"Page was deployed but its record could not be finalized: {exc}") from exc

        self._advance(run, PublishStage.DONE)
        log_event(
            logger,
            "publish.completed",
            page_id=run.page_id,
            url=final_url,
            uploaded=len(uploaded),
            stages=[stage.value for stage in run.history],
        )
        return PublishResult(
            page_id=run.page_id,
            deployment_id=run.deployment_id,
            title=run.request.title,
            full_domain=run.full_domain,
            repository_url=repo.html_url,
            hosting_url=hosting_url,
            final_url=final_url,
            status=PageStatus.ACTIVE.value,
            uploaded_files=len(uploaded),
        )
