"""Remote access layer for HubStore."""

from hubstore.remote.transport import ApiRequest, ApiResponse, GitHubTransport

__all__ = [
    "ApiRequest",
    "ApiResponse",
    "GitHubTransport",
]
