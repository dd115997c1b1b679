"""Runtime configuration for HubStore."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from hubstore.constants import (
    DEFAULT_API_URL,
    DEFAULT_BRANCH,
    DEFAULT_MAX_WORKERS,
    DEFAULT_TIMEOUT,
    DEFAULT_TYPE_CACHE_SIZE,
    ENV_API_URL,
    ENV_DEFAULT_BRANCH,
    ENV_GITHUB_TOKEN,
    ENV_REPO,
    ENV_TOKEN,
)
from hubstore.errors import InputError
from hubstore.remote.transport import GitHubTransport
from hubstore.storage.object_store import RemoteObjectStore
from hubstore.storage.type_cache import TypeCache


@dataclass
class StoreConfig:
    """Settings needed to talk to one repository.

    Attributes:
        repo: Repository in ``owner/name`` form
        token: API token, sent as ``Authorization: token ...``
        api_url: Base URL of the API (GitHub Enterprise hosts differ)
        default_branch: Branch ``HEAD`` resolves to
        timeout: Per-request timeout in seconds
        max_workers: Concurrent requests per tree-building batch
        type_cache_size: Entries kept in the hash -> type cache
    """

    repo: Optional[str] = None
    token: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    default_branch: str = DEFAULT_BRANCH
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    type_cache_size: int = DEFAULT_TYPE_CACHE_SIZE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """Read settings from ``HUBSTORE_*`` environment variables.

        ``GITHUB_TOKEN`` is used when ``HUBSTORE_TOKEN`` is not set.
        """
        env = os.environ if environ is None else environ
        return cls(
            repo=env.get(ENV_REPO) or None,
            token=env.get(ENV_TOKEN) or env.get(ENV_GITHUB_TOKEN) or None,
            api_url=env.get(ENV_API_URL) or DEFAULT_API_URL,
            default_branch=env.get(ENV_DEFAULT_BRANCH) or DEFAULT_BRANCH,
        )

    def open_store(self) -> RemoteObjectStore:
        """Build a store talking to the configured repository.

        Raises:
            InputError: If no repository is configured
        """
        if not self.repo:
            raise InputError(f"No repository configured (set {ENV_REPO} or pass --repo)")
        transport = GitHubTransport(
            self.repo,
            token=self.token,
            api_url=self.api_url,
            timeout=self.timeout,
        )
        return RemoteObjectStore(
            transport,
            type_cache=TypeCache(self.type_cache_size),
            default_branch=self.default_branch,
            max_workers=self.max_workers,
        )
