"""
Access tokens for the authenticated Sheets API.

A service account proves its identity with a signed JWT assertion
(RS256, private key from the credential bundle) and exchanges it at
the token endpoint using the jwt-bearer grant. The plain provider
mints a fresh token on every call; ``CachingTokenProvider`` keeps one
until shortly before it expires.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from sheets.credentials import ServiceAccountCredentials
from sheets.errors import FetchError, ParseError, TokenExchangeError

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
TOKEN_LIFETIME_SECONDS = 3600
EXPIRY_SKEW_SECONDS = 60


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float


class TokenProvider(ABC):
    """Supplies bearer tokens for Sheets API calls."""

    @abstractmethod
    async def mint_access_token(self) -> AccessToken:
        ...

    async def get_token(self) -> str:
        token = await self.mint_access_token()
        return token.value


class ServiceAccountTokenProvider(TokenProvider):
    """Mints tokens by signing an assertion with the service account key."""

    def __init__(
        self,
        credentials: ServiceAccountCredentials,
        scope: str = SHEETS_SCOPE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.credentials = credentials
        self.scope = scope
        self.timeout = timeout
        self.transport = transport
        self.clock = clock

    def build_assertion(self) -> str:
        """Return the signed ``header.claims.signature`` assertion."""
        issued_at = int(self.clock())
        claims = {
            "iss": self.credentials.client_email,
            "scope": self.scope,
            "aud": self.credentials.token_uri,
            "iat": issued_at,
            "exp": issued_at + TOKEN_LIFETIME_SECONDS,
        }
        headers = {"kid": self.credentials.private_key_id} if self.credentials.private_key_id else None

        try:
            return jwt.encode(claims, self.credentials.private_key, algorithm="RS256", headers=headers)
        except JOSEError as exc:
            raise ParseError(f"Invalid service account private key: {exc}") from exc

    async def mint_access_token(self) -> AccessToken:
        assertion = self.build_assertion()
        started = self.clock()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.credentials.token_uri,
                    data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                )
        except httpx.TimeoutException as exc:
            raise FetchError("Token endpoint timed out") from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Token endpoint request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.status_code >= 400:
            detail = payload.get("error_description") or payload.get("error") or response.text[:200]
            logger.error(f"Token exchange rejected ({response.status_code}): {detail}")
            raise TokenExchangeError(f"Failed to get access token: {detail}")

        access_token = payload.get("access_token")
        if not access_token:
            raise TokenExchangeError("Failed to get access token: no token in response")

        expires_in = payload.get("expires_in") or TOKEN_LIFETIME_SECONDS
        logger.debug(f"Minted Sheets access token for {self.credentials.client_email}")
        return AccessToken(value=access_token, expires_at=started + float(expires_in))


class CachingTokenProvider(TokenProvider):
    """Reuses the wrapped provider's token until it is about to expire."""

    def __init__(
        self,
        inner: TokenProvider,
        skew: float = EXPIRY_SKEW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.inner = inner
        self.skew = skew
        self.clock = clock
        self._cached: Optional[AccessToken] = None

    def _is_cache_valid(self) -> bool:
        return self._cached is not None and self.clock() < self._cached.expires_at - self.skew

    async def mint_access_token(self) -> AccessToken:
        if not self._is_cache_valid():
            self._cached = await self.inner.mint_access_token()
        return self._cached

    def invalidate_cache(self):
        self._cached = None
