"""Keystone EC2 인증 클라이언트 모듈.

EC2 자격 증명을 서명해 Keystone v3 `ec2tokens` API를 호출하고
응답에서 사용자, 프로젝트, 토큰 ID를 추출합니다.
"""

import logging
from types import TracebackType

import httpx
from pydantic import ValidationError

from ec2auth.constants import Keystone, TransportDefaults
from ec2auth.exceptions import (
    AuthRejectedError,
    AuthServiceUnavailableError,
    InvalidResponseError,
    MissingProjectError,
    MissingUserError,
    RetriesExhaustedError,
    TokenExtractionError,
    UnexpectedStatusError,
)
from ec2auth.models import AuthResult, EC2Credentials, TokenResponse
from ec2auth.signature import build_ec2_credentials

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=TransportDefaults.CONNECT_TIMEOUT_SECONDS,
    read=TransportDefaults.READ_TIMEOUT_SECONDS,
    write=TransportDefaults.WRITE_TIMEOUT_SECONDS,
    pool=TransportDefaults.POOL_TIMEOUT_SECONDS,
)


def identity_endpoint(auth_url: str) -> str:
    """인증 URL을 Keystone v3 루트로 정규화합니다.

    Example:
        >>> identity_endpoint("https://keystone.example.com:5000")
        'https://keystone.example.com:5000/v3'
        >>> identity_endpoint("https://keystone.example.com:5000/v3/")
        'https://keystone.example.com:5000/v3'
    """
    base = auth_url.rstrip("/")
    if base.endswith("/v2.0"):
        base = base[: -len("/v2.0")]
    if not base.endswith(f"/{Keystone.API_VERSION}"):
        base = f"{base}/{Keystone.API_VERSION}"
    return base


def _error_message(response: httpx.Response) -> str:
    """Keystone 오류 응답에서 메시지를 꺼냅니다."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.reason_phrase


class AuthClient:
    """Keystone EC2 인증 HTTP 클라이언트.

    하나의 httpx.Client를 소유하며 여러 워커 스레드가 동시에 사용할 수 있습니다.

    Args:
        auth_url: Keystone 인증 URL
        transport: 사용할 httpx 전송 계층 (기본값: httpx 기본 전송 계층)
        timeout: HTTP 요청 타임아웃

    Example:
        >>> with AuthClient("https://keystone.example.com:5000") as client:
        ...     result = client.authenticate(credentials)
        ...     print(result.token_id)
    """

    def __init__(
        self,
        auth_url: str,
        transport: httpx.BaseTransport | None = None,
        timeout: httpx.Timeout | float = DEFAULT_TIMEOUT,
    ) -> None:
        self.identity_url = identity_endpoint(auth_url)
        self.timeout = timeout
        self._client = httpx.Client(transport=transport, timeout=timeout)

    def __enter__(self) -> "AuthClient":
        """컨텍스트 매니저 진입."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """컨텍스트 매니저 종료 시 HTTP 클라이언트를 닫습니다."""
        self.close()

    def close(self) -> None:
        """HTTP 클라이언트 연결을 닫습니다."""
        if not self._client.is_closed:
            self._client.close()

    @property
    def ec2tokens_url(self) -> str:
        return f"{self.identity_url}/{Keystone.EC2_TOKENS_PATH}"

    def authenticate(self, credentials: EC2Credentials) -> AuthResult:
        """EC2 자격 증명으로 토큰을 발급받습니다.

        Args:
            credentials: EC2 자격 증명

        Returns:
            사용자 이름, 프로젝트 이름, 토큰 ID

        Raises:
            AuthServiceUnavailableError: 인증 서비스에 연결할 수 없는 경우
            AuthRejectedError: 자격 증명이 거부된 경우 (401/403)
            UnexpectedStatusError: 그 밖의 오류 상태 코드
            InvalidResponseError: 응답 본문 형식이 잘못된 경우
            MissingUserError: 응답에 사용자가 없는 경우
            MissingProjectError: 응답에 프로젝트 범위가 없는 경우
            TokenExtractionError: 토큰 ID를 추출할 수 없는 경우
            BodyReadError: 디버그 로깅 중 본문을 읽을 수 없는 경우
        """
        payload = {
            "credentials": build_ec2_credentials(
                credentials.access, credentials.secret.get_secret_value()
            )
        }

        try:
            response = self._client.post(
                self.ec2tokens_url,
                json=payload,
                headers={"Accept": "application/json"},
            )
        except RetriesExhaustedError as e:
            raise AuthServiceUnavailableError(
                f"인증 서비스에 연결할 수 없습니다: {e.last_error}"
            ) from e
        except httpx.TransportError as e:
            raise AuthServiceUnavailableError(f"인증 서비스에 연결할 수 없습니다: {e}") from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> AuthResult:
        if response.status_code in (401, 403):
            raise AuthRejectedError(
                f"자격 증명이 거부되었습니다: {_error_message(response)}",
                status_code=response.status_code,
            )
        if response.status_code != 200:  # noqa: PLR2004
            raise UnexpectedStatusError(
                f"예상하지 못한 응답 코드 {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            body = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InvalidResponseError(f"토큰 응답 형식이 올바르지 않습니다: {e}") from e

        if body.token.user is None:
            raise MissingUserError()
        if body.token.project is None:
            raise MissingProjectError()

        token_id = response.headers.get(Keystone.SUBJECT_TOKEN_HEADER)
        if not token_id:
            raise TokenExtractionError(
                f"응답에 {Keystone.SUBJECT_TOKEN_HEADER} 헤더가 없습니다"
            )

        logger.debug("EC2 토큰을 발급받았습니다")
        return AuthResult(
            username=body.token.user.name,
            project_name=body.token.project.name,
            token_id=token_id,
        )


def authenticate(
    auth_url: str,
    credentials: EC2Credentials,
    transport: httpx.BaseTransport | None = None,
) -> AuthResult:
    """1회용 클라이언트로 인증을 수행합니다.

    Args:
        auth_url: Keystone 인증 URL
        credentials: EC2 자격 증명
        transport: 사용할 httpx 전송 계층

    Returns:
        인증 결과
    """
    with AuthClient(auth_url, transport=transport) as client:
        return client.authenticate(credentials)
