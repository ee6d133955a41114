# =============================================================================
# REST Provider Plumbing
# =============================================================================
# Shared by the Google and Microsoft providers: fetch an OAuth token, make
# one authenticated GET, hand the body to the subclass for parsing.
#
# Uses httpx.AsyncClient. One client is shared by all REST accounts and owned
# by the poll manager; providers never close it.
# =============================================================================

import logging

import httpx

from pigeon.cancellation import Cancellable
from pigeon.core import Account
from pigeon.credentials import CredentialSource
from pigeon.errors import ProviderError, TransportError
from pigeon.providers.base import MailProvider

logger = logging.getLogger(__name__)

# Request timeout for REST providers (seconds)
HTTP_TIMEOUT = 10.0


def create_http_client() -> httpx.AsyncClient:
    """The shared HTTP client used by every REST provider."""
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True)


class RestProvider(MailProvider):
    """Base class for providers that poll a single authenticated URL."""

    def __init__(
        self,
        account: Account,
        *,
        credentials: CredentialSource,
        http_client: httpx.AsyncClient,
        cancellable: Cancellable,
    ) -> None:
        super().__init__(account)
        self._credentials = credentials
        self._http = http_client
        self.cancellable = cancellable

    async def _get(self, url: str, params: dict[str, str] | None = None) -> httpx.Response:
        """
        GET url with the account's bearer token.

        Raises:
            CredentialError: No token available.
            TransportError: The request never got an answer.
            ProviderError: The answer was not HTTP 200.
        """
        self.cancellable.raise_if_cancelled()
        token = self._credentials.get_secret(self.account)

        logger.debug(f"GET {url} for {self.account.name}")
        try:
            response = await self.cancellable.guard(
                self._http.get(
                    url,
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {url} timed out") from e
        except httpx.TransportError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise ProviderError(f"HTTP {response.status_code}: {response.reason_phrase}")

        return response
