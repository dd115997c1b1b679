"""HTTP transport for the GitHub git data API.

The store only needs a callable ``request(method, path, body) ->
ApiResponse``. :class:`GitHubTransport` is the production implementation;
tests pass any callable with the same shape.
"""

import logging
import threading
from typing import Any, Callable, NamedTuple, Optional

import requests

from hubstore.constants import DEFAULT_API_URL, DEFAULT_TIMEOUT
from hubstore.errors import InputError, TransportError

logger = logging.getLogger(__name__)


class ApiResponse(NamedTuple):
    """Status code and parsed JSON body of one API call."""

    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def message(self) -> Optional[str]:
        """The ``message`` field GitHub includes in error bodies."""
        if isinstance(self.body, dict):
            return self.body.get("message")
        return None


ApiRequest = Callable[[str, str, Optional[Any]], ApiResponse]


class GitHubTransport:
    """Sends git data API requests for one repository.

    Paths use a ``:root`` placeholder that is replaced by ``owner/name``,
    e.g. ``/repos/:root/git/trees``.

    Attributes:
        repo: Repository in ``owner/name`` form
        api_url: Base URL of the API
        timeout: Per-request timeout in seconds
        headers: Headers sent with every request

    Example:
        >>> transport = GitHubTransport("octocat/hello-world", token="...")
        >>> transport("GET", "/repos/:root/git/refs/heads/master")
        ApiResponse(status=200, body={...})
    """

    def __init__(
        self,
        repo: str,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not repo or repo.count("/") != 1:
            raise InputError(f"Repository must be in owner/name form, got {repo!r}")
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "hubstore",
        }
        if token:
            self.headers["Authorization"] = f"token {token}"
        self._shared_session = session
        if session is not None:
            session.headers.update(self.headers)
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Session for the calling thread.

        A session passed to the constructor is used by every thread;
        otherwise each thread gets its own, created on first use.
        """
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    def url_for(self, path: str) -> str:
        return self.api_url + path.replace(":root", self.repo)

    def __call__(self, method: str, path: str, body: Optional[Any] = None) -> ApiResponse:
        """Send one request.

        Raises:
            TransportError: If no response could be obtained or the body is
                not JSON
        """
        url = self.url_for(path)
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(None, str(e)) from e

        if response.status_code == 204 or not response.content:
            return ApiResponse(response.status_code, None)
        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(response.status_code, f"Invalid JSON body: {e}") from e
        return ApiResponse(response.status_code, payload)
