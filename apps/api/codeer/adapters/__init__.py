from __future__ import annotations

from codeer.adapters.base import DnsProvider, Judge, RepositoryHost
from codeer.adapters.cloudflare import CloudflareDns
from codeer.adapters.github import GitHubPagesClient
from codeer.adapters.judge0 import Judge0Client
from codeer.config import cloudflare_settings, github_settings, judge0_settings


def build_repository_host() -> RepositoryHost:
    return GitHubPagesClient(github_settings())


def build_dns_provider() -> DnsProvider:
    return CloudflareDns(cloudflare_settings())


def build_judge() -> Judge:
    return Judge0Client(judge0_settings())
