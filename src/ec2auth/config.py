"""EC2 인증 설정 모듈.

환경 변수와 CLI 값을 합쳐 실행 설정을 관리합니다.
인증 URL과 자격 증명은 OpenStack/AWS 표준 환경 변수를 그대로 읽고,
나머지 항목은 EC2AUTH_ 접두사를 사용합니다.
"""

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ec2auth.constants import EnvVar, Reporting, TransportDefaults
from ec2auth.exceptions import ConfigurationError
from ec2auth.models import EC2Credentials


class EC2AuthSettings(BaseSettings):
    """EC2 인증 실행 설정 클래스.

    생성자 인자(CLI 값)가 환경 변수보다 우선합니다.
    접두사 없는 AUTH_URL, ACCESS, SECRET 환경 변수는 읽지 않습니다.

    Attributes:
        auth_url: Keystone 인증 URL (OS_AUTH_URL)
        access: EC2 access 키 (AWS_ACCESS_KEY_ID)
        secret: EC2 secret 키 (AWS_SECRET_ACCESS_KEY)
        host: Host 헤더 재정의 값
        threads: 0이면 1회 인증, 양수이면 해당 동시성으로 무한 부하 실행
        insecure_tls: 서버 TLS 인증서 검증 생략 여부
        debug: HTTP 트래픽 디버그 로그 여부
        show_error: 실패 유형 집계 여부
        max_retries: 연결 오류 재시도 횟수
        max_retry_time: 재시도 전체 제한 시간 (초)
        connect_timeout: 연결 타임아웃 (초)
        read_timeout: 응답 헤더 대기 타임아웃 (초)
        report_interval: 통계 보고 주기 (초)
        log_format: 로그 출력 형식 (console/json)

    Example:
        >>> settings = EC2AuthSettings(
        ...     auth_url="https://keystone.example.com:5000/v3",
        ...     access="ak",
        ...     secret="sk",
        ... )
        >>> settings.threads
        0
    """

    auth_url: str = Field(
        default="",
        validation_alias=AliasChoices(EnvVar.AUTH_URL, "EC2AUTH_AUTH_URL"),
    )
    access: str = Field(
        default="",
        validation_alias=AliasChoices(EnvVar.ACCESS, "EC2AUTH_ACCESS"),
    )
    secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices(EnvVar.SECRET, "EC2AUTH_SECRET"),
    )
    host: str = ""
    threads: int = Field(default=0, ge=0)
    insecure_tls: bool = False
    debug: bool = False
    show_error: bool = False
    max_retries: int = Field(default=TransportDefaults.MAX_RETRIES, ge=0)
    max_retry_time: float | None = Field(default=None, gt=0)
    connect_timeout: float = Field(default=TransportDefaults.CONNECT_TIMEOUT_SECONDS, gt=0)
    read_timeout: float = Field(default=TransportDefaults.READ_TIMEOUT_SECONDS, gt=0)
    report_interval: float = Field(default=Reporting.INTERVAL_SECONDS, gt=0)
    log_format: Literal["console", "json"] = "console"

    model_config = SettingsConfigDict(
        env_prefix="EC2AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def ensure_complete(self) -> None:
        """필수 설정이 모두 있는지 확인합니다.

        누락된 항목을 모두 모아 한 번에 보고합니다.

        Raises:
            ConfigurationError: 하나 이상의 필수 값이 비어 있는 경우
        """
        problems = []
        if not self.auth_url:
            problems.append(
                f"Please define --auth-url parameter or {EnvVar.AUTH_URL} environment variable"
            )
        if not self.access:
            problems.append(
                f"Please define --access parameter or {EnvVar.ACCESS} environment variable"
            )
        if not self.secret.get_secret_value():
            problems.append(
                f"Please define --secret parameter or {EnvVar.SECRET} environment variable"
            )
        if problems:
            raise ConfigurationError(problems)

    def credentials(self) -> EC2Credentials:
        """설정에서 자격 증명 모델을 만듭니다.

        Raises:
            ConfigurationError: 필수 값이 비어 있는 경우
        """
        self.ensure_complete()
        return EC2Credentials(access=self.access, secret=self.secret, auth_url=self.auth_url)
