import httpx
import structlog
from typing import Optional, Type, TypeVar, Any, Dict, Union
from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..config import AuthConfig
from ..errors import (
    AuthError,
    BackendError,
    BackendUnreachable,
    CredentialError,
    MalformedResponse,
)
from ..logging import mask_phone
from ..models import Mode
from .schemas import AuthPayload, KakaoLoginPayload, SignupPayload

# Generic type for Pydantic models
T = TypeVar("T", bound=BaseModel)

logger = structlog.get_logger(__name__)


class BackendClient:
    """
    Async HTTP client for the Unigen auth endpoints.

    Features:
    - Connection pooling (via httpx.AsyncClient).
    - Pydantic model deserialization.
    - Standardized exception mapping onto the auth error taxonomy.

    Every call is a single request with a single outcome; nothing is retried.
    """

    def __init__(
        self,
        config: Optional[AuthConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or AuthConfig()
        self.base_url = self.config.api_base_url.rstrip("/")

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.timeout,
            headers={
                "User-Agent": "unigen-auth",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    def _map_exception(self, exc: Exception, fallback: str) -> AuthError:
        """Map httpx exceptions to auth errors."""
        if isinstance(exc, httpx.TimeoutException):
            return BackendUnreachable("Request timed out", details=str(exc))
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            message = _backend_message(exc.response) or fallback
            if status >= 500:
                return BackendError(message, status_code=status, details=exc.response.text)
            return CredentialError(message, status_code=status, details=exc.response.text)
        if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
            return BackendUnreachable(f"Failed to connect: {exc}", details=str(exc))

        return BackendUnreachable(f"Unexpected transport error: {exc}", details=str(exc))

    async def _request(
        self,
        method: str,
        path: str,
        fallback: str,
        response_model: Optional[Type[T]] = None,
        token: Optional[str] = None,
        **kwargs,
    ) -> Union[T, Dict[str, Any], None]:
        """Execute one request and map failures."""
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            mapped = self._map_exception(e, fallback)
            logger.warning(
                "backend_call_failed",
                method=method,
                path=path,
                status_code=mapped.status_code,
                error_type=type(mapped).__name__,
            )
            raise mapped from e

        if response.status_code == 204 or not response.content:
            if response_model:
                raise MalformedResponse("Empty response body", status_code=response.status_code)
            return None

        try:
            data = response.json()
            if response_model:
                return response_model.model_validate(data)
            return data
        except (ValueError, PydanticValidationError) as e:
            logger.warning("backend_response_malformed", method=method, path=path, error=str(e))
            raise MalformedResponse("Malformed response", status_code=response.status_code) from e

    async def post(
        self,
        path: str,
        json: Any = None,
        fallback: str = "Request failed",
        response_model: Optional[Type[T]] = None,
        token: Optional[str] = None,
    ) -> Union[T, Dict, None]:
        return await self._request(
            "POST", path, fallback, json=json, response_model=response_model, token=token
        )

    # Password channel

    async def login(self, phone: str, password: str) -> AuthPayload:
        """POST /auth/login"""
        logger.info("password_login", phone=mask_phone(phone))
        return await self.post(
            "/auth/login",
            json={"phone": phone, "password": password},
            fallback="Login failed",
            response_model=AuthPayload,
        )

    async def signup(
        self,
        name: str,
        username: str,
        phone: str,
        password: str,
        signup_mode: str = "phone",
        preferred_mode: Mode = Mode.NORMAL,
    ) -> SignupPayload:
        """POST /auth/signup"""
        logger.info("password_signup", phone=mask_phone(phone), username=username)
        return await self.post(
            "/auth/signup",
            json={
                "name": name,
                "username": username,
                "phone": phone,
                "password": password,
                "signup_mode": signup_mode,
                "preferred_mode": preferred_mode.value,
            },
            fallback="Signup failed",
            response_model=SignupPayload,
        )

    async def change_password(self, payload: Dict[str, str], token: Optional[str] = None) -> None:
        """POST /auth/change-password"""
        await self.post(
            "/auth/change-password",
            json=payload,
            fallback="Could not change the password",
            token=token,
        )

    # Phone OTP channel

    async def send_code(self, phone: str, code_type: Optional[str] = None) -> None:
        """POST /senior/auth/send-code"""
        body = {"phone": phone}
        if code_type:
            body["type"] = code_type
        logger.info("otp_send", phone=mask_phone(phone), code_type=code_type)
        await self.post("/senior/auth/send-code", json=body, fallback="Could not send the code")

    async def verify_code(self, phone: str, code: str) -> None:
        """POST /senior/auth/verify-code (verification only, no session)"""
        await self.post(
            "/senior/auth/verify-code",
            json={"phone": phone, "code": code},
            fallback="Verification failed",
        )

    async def senior_phone_login(self, phone: str, code: str) -> AuthPayload:
        """POST /senior/auth/phone (verify and log in)"""
        logger.info("otp_verify_login", phone=mask_phone(phone))
        return await self.post(
            "/senior/auth/phone",
            json={"phone": phone, "code": code},
            fallback="Verification failed",
            response_model=AuthPayload,
        )

    # Delegated identity channel

    async def kakao_login(self, mode: Mode, access_token: str) -> KakaoLoginPayload:
        """POST /{mode}/auth/kakao/login"""
        return await self.post(
            f"/{mode.value}/auth/kakao/login",
            json={"access_token": access_token},
            fallback="Kakao login failed",
            response_model=KakaoLoginPayload,
        )

    async def kakao_signup(
        self,
        mode: Mode,
        access_token: str,
        username: str,
        phone: str,
        name: str,
    ) -> AuthPayload:
        """POST /{mode}/auth/kakao/signup"""
        logger.info("kakao_signup", mode=mode.value, username=username, phone=mask_phone(phone))
        return await self.post(
            f"/{mode.value}/auth/kakao/signup",
            json={
                "access_token": access_token,
                "username": username,
                "phone": phone,
                "name": name,
                "preferred_mode": mode.value,
            },
            fallback="Kakao signup failed",
            response_model=AuthPayload,
        )


def _backend_message(response: httpx.Response) -> Optional[str]:
    """Pull the ``message`` field out of an error body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if isinstance(message, str) and message:
            return message
    return None
