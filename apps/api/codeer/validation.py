from __future__ import annotations

import re
from collections.abc import Sequence

from codeer.adapters.base import WebsiteFile
from codeer.config import PAGE_MAX_TOTAL_BYTES
from codeer.errors import InvalidFormat, MissingEntryPoint, SizeLimitExceeded

SUBDOMAIN_MIN_LENGTH = 3
SUBDOMAIN_MAX_LENGTH = 63

_SUBDOMAIN_CHARS = re.compile(r"^[a-z0-9-]+$")
_REPO_NAME_INVALID = re.compile(r"[^a-z0-9-]")
_REPO_NAME_DASHES = re.compile(r"-+")


def validate_subdomain(subdomain: str) -> None:
    if not SUBDOMAIN_MIN_LENGTH <= len(subdomain) <= SUBDOMAIN_MAX_LENGTH:
        raise InvalidFormat(
            f"Subdomain must be between {SUBDOMAIN_MIN_LENGTH} and {SUBDOMAIN_MAX_LENGTH} characters"
        )
    if not _SUBDOMAIN_CHARS.match(subdomain):
        raise InvalidFormat("Subdomain can only contain lowercase letters, numbers, and hyphens")
    if subdomain.startswith("-") or subdomain.endswith("-"):
        raise InvalidFormat("Subdomain cannot start or end with a hyphen")


def _is_entry_point(path: str) -> bool:
    lowered = path.lower()
    return lowered == "index.html" or lowered.endswith("/index.html")


def _validate_file_path(path: str) -> None:
    if not path or "\x00" in path or "\\" in path:
        raise InvalidFormat(f"Invalid file name: {path!r}")
    if path.startswith("/"):
        raise InvalidFormat(f"File path must be relative: {path}")
    if ".." in path.split("/"):
        raise InvalidFormat(f"File path contains traversal sequence: {path}")


def validate_website_files(files: Sequence[WebsiteFile], max_total_bytes: int = PAGE_MAX_TOTAL_BYTES) -> None:
    if not any(_is_entry_point(file.path) for file in files):
        raise MissingEntryPoint("An index.html file is required")

    for file in files:
        _validate_file_path(file.path)

    total_size = sum(file.size for file in files)
    if total_size > max_total_bytes:
        limit_mb = max_total_bytes // (1024 * 1024)
        raise SizeLimitExceeded(f"Total file size exceeds {limit_mb}MB limit")


def sanitize_repo_name(name: str) -> str:
    sanitized = _REPO_NAME_INVALID.sub("-", name.lower())
    sanitized = _REPO_NAME_DASHES.sub("-", sanitized)
    return sanitized.strip("-")


def build_repo_name(subdomain: str, domain: str) -> str:
    return sanitize_repo_name(f"{subdomain}-{domain.replace('.', '-')}-site")
