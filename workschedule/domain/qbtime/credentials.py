"""
Where the QuickBooks Time bearer token comes from.

Two deployment modes share one code path: the caller supplies the token with
each request, or the server holds one token for the whole process.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .errors import NotConnectedError


class CredentialSource(ABC):
    mode: str = ""
    missing_message = "Not connected - enter your API token first"

    @abstractmethod
    def get_token(self) -> Optional[str]:
        ...

    @property
    def configured(self) -> bool:
        return bool(self.get_token())

    def require_token(self) -> str:
        token = self.get_token()
        if not token:
            raise NotConnectedError(self.missing_message)
        return token


class PerRequestCredential(CredentialSource):
    """Token supplied by the caller for a single request"""

    mode = "per-request"
    missing_message = "API token is required"

    def __init__(self, token: Optional[str]):
        self._token = token.strip() if token else None

    def get_token(self) -> Optional[str]:
        return self._token


class ServerCredential(CredentialSource):
    """Process-wide token from the server environment; never sent back to clients"""

    mode = "server"
    missing_message = "QBTIME_TOKEN environment variable is not set"

    def __init__(self, token: Optional[str]):
        self._token = token or None

    def get_token(self) -> Optional[str]:
        return self._token


def resolve_credentials(supplied: Optional[str], server_token: Optional[str]) -> CredentialSource:
    """A token in the request wins; otherwise fall back to the server-side one"""
    if supplied and supplied.strip():
        return PerRequestCredential(supplied)
    return ServerCredential(server_token)
