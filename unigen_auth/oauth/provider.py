"""
Identity Provider
=================
Kakao authorization-code client: authorize URL, token exchange, logout.
"""

from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog

from ..config import AuthConfig
from ..errors import TokenExchangeFailed
from ..http.schemas import ProviderTokenPayload

logger = structlog.get_logger(__name__)


class IdentityProvider(ABC):
    """What the exchange needs from a delegated-identity provider."""

    name: str = "provider"

    @abstractmethod
    def is_initialized(self) -> bool:
        ...

    @abstractmethod
    def authorization_url(self, redirect_uri: str, state: Optional[str] = None) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str, redirect_uri: str) -> str:
        ...

    async def logout(self, access_token: str) -> bool:
        return True


class KakaoProvider(IdentityProvider):
    """
    Kakao OAuth 2.0 (REST) client.

    ``init()`` must run before ``authorization_url``; until then the provider
    reports itself uninitialized, the same as the JS SDK before it loads.
    """

    name = "kakao"

    def __init__(
        self,
        config: Optional[AuthConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or AuthConfig()
        self.app_key: Optional[str] = None
        self.client = httpx.AsyncClient(timeout=self.config.timeout, transport=transport)

    def init(self, app_key: Optional[str] = None) -> bool:
        """Initialize with the REST API key; idempotent."""
        if self.app_key:
            return True
        key = app_key or self.config.kakao_client_id
        if not key:
            logger.warning("kakao_init_skipped", reason="missing_app_key")
            return False
        self.app_key = key
        logger.info("kakao_initialized")
        return True

    def is_initialized(self) -> bool:
        return bool(self.app_key)

    def authorization_url(self, redirect_uri: str, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.app_key,
            "redirect_uri": redirect_uri,
            "response_type": "code",
        }
        if state:
            params["state"] = state
        return f"{self.config.kakao_authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> str:
        """
        Trade an authorization code for an access token.

        Raises:
            TokenExchangeFailed: non-2xx, network failure or no access_token
        """
        try:
            response = await self.client.post(
                self.config.kakao_token_url,
                data={
                    "grant_type": "authorization_code",
                    "client_id": self.app_key or self.config.kakao_client_id,
                    "redirect_uri": redirect_uri,
                    "code": code,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded;charset=utf-8"},
            )
            response.raise_for_status()
            payload = ProviderTokenPayload.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.warning("kakao_token_exchange_rejected", status_code=e.response.status_code)
            raise TokenExchangeFailed(
                "Kakao token exchange failed",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("kakao_token_exchange_unreachable", error=str(e))
            raise TokenExchangeFailed(f"Kakao token endpoint unreachable: {e}") from e
        except ValueError as e:
            logger.warning("kakao_token_response_malformed", error=str(e))
            raise TokenExchangeFailed("Kakao token response malformed") from e

        logger.info("kakao_token_exchanged")
        return payload.access_token

    async def logout(self, access_token: str) -> bool:
        """Expire the Kakao access token. Returns False if Kakao refused."""
        try:
            response = await self.client.post(
                self.config.kakao_logout_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error("kakao_logout_failed", error=str(e))
            return False

    async def aclose(self):
        await self.client.aclose()
