"""ec2auth: EC2 자격 증명으로 Keystone 토큰을 발급받는 도구.

인증 1회 실행과 연속 부하 실행을 지원하며, 디버그 모드에서는
모든 HTTP 요청/응답을 민감 정보를 가린 채 기록합니다.

주요 구성 요소:
    - AuthClient: Keystone EC2 인증 HTTP 클라이언트
    - LoggingTransport: 로깅/재시도 httpx 전송 계층
    - TransportConfig: 전송 계층 설정
    - format_json: JSON 본문 마스킹 포맷터
    - LoadHarness: 부하 하네스
    - EC2AuthSettings: 실행 설정

Example:
    >>> from ec2auth import AuthClient, EC2Credentials
    >>>
    >>> credentials = EC2Credentials(access="ak", secret="sk", auth_url="https://keystone:5000")
    >>> with AuthClient(credentials.auth_url) as client:
    ...     print(client.authenticate(credentials).token_id)
"""

from ec2auth.client import AuthClient, authenticate
from ec2auth.config import EC2AuthSettings
from ec2auth.exceptions import (
    AuthServiceUnavailableError,
    EC2AuthError,
    RetriesExhaustedError,
)
from ec2auth.harness import LoadHarness
from ec2auth.models import AuthResult, EC2Credentials
from ec2auth.redaction import format_json
from ec2auth.transport import LoggingTransport, TransportConfig

__all__ = [
    "AuthClient",
    "authenticate",
    "EC2AuthSettings",
    "EC2AuthError",
    "AuthServiceUnavailableError",
    "RetriesExhaustedError",
    "LoadHarness",
    "AuthResult",
    "EC2Credentials",
    "format_json",
    "LoggingTransport",
    "TransportConfig",
]
