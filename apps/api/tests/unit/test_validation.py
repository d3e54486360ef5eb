from __future__ import annotations

import sys
from pathlib import Path

import pytest

API_DIR = Path(__file__).resolve().parents[2]
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

from codeer.adapters.base import WebsiteFile
from codeer.errors import InvalidFormat, MissingEntryPoint, SizeLimitExceeded
from codeer.validation import build_repo_name, sanitize_repo_name, validate_subdomain, validate_website_files


@pytest.mark.parametrize("subdomain", ["abc", "my-site", "a1b2c3", "x" * 63])
def test_validate_subdomain_accepts_valid_labels(subdomain: str) -> None:
    validate_subdomain(subdomain)


@pytest.mark.parametrize(
    "subdomain",
    ["ab", "x" * 64, "My-Site", "my_site", "my.site", "-mysite", "mysite-", ""],
)
def test_validate_subdomain_rejects_invalid_labels(subdomain: str) -> None:
    with pytest.raises(InvalidFormat):
        validate_subdomain(subdomain)


def test_validate_website_files_requires_index_html() -> None:
    files = [WebsiteFile("about.html", b"<p>about</p>"), WebsiteFile("style.css", b"body{}")]

    with pytest.raises(MissingEntryPoint, match="index.html"):
        validate_website_files(files)


@pytest.mark.parametrize("path", ["index.html", "INDEX.HTML", "site/index.html", "Site/Index.Html"])
def test_validate_website_files_accepts_entry_point_variants(path: str) -> None:
    validate_website_files([WebsiteFile(path, b"<html></html>")])


def test_validate_website_files_rejects_near_miss_entry_point() -> None:
    with pytest.raises(MissingEntryPoint):
        validate_website_files([WebsiteFile("myindex.html", b"<html></html>")])


def test_validate_website_files_enforces_total_size_ceiling() -> None:
    files = [WebsiteFile("index.html", b"a" * 60), WebsiteFile("app.js", b"b" * 41)]

    with pytest.raises(SizeLimitExceeded) as exc_info:
        validate_website_files(files, max_total_bytes=100)

    assert exc_info.value.status_code == 413


def test_validate_website_files_allows_total_exactly_at_ceiling() -> None:
    files = [WebsiteFile("index.html", b"a" * 60), WebsiteFile("app.js", b"b" * 40)]

    validate_website_files(files, max_total_bytes=100)


def test_missing_entry_point_is_reported_before_size() -> None:
    with pytest.raises(MissingEntryPoint):
        validate_website_files([WebsiteFile("big.bin", b"x" * 500)], max_total_bytes=100)


@pytest.mark.parametrize("path", ["../index.html", "/etc/index.html", "a\\b.html", "assets/../../x.js"])
def test_validate_website_files_rejects_unsafe_paths(path: str) -> None:
    files = [WebsiteFile("index.html", b"<html></html>"), WebsiteFile(path, b"x")]

    with pytest.raises(InvalidFormat):
        validate_website_files(files)


def test_sanitize_repo_name_collapses_invalid_characters() -> None:
    assert sanitize_repo_name("My__Site..Name-") == "my-site-name"


def test_build_repo_name_combines_subdomain_and_domain() -> None:
    assert build_repo_name("alice", "codeer.dev") == "alice-codeer-dev-site"
