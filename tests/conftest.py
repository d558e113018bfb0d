"""pytest fixtures."""

import os
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from ec2auth.constants import EnvVar, Keystone
from ec2auth.logging import HttpTrafficLogger
from ec2auth.models import EC2Credentials

AUTH_URL = "https://keystone.example.com:5000/v3"


class RecordingLogger:
    """structlog 로거 대역. `log()` 호출을 (level, event, kwargs)로 기록합니다."""

    def __init__(self) -> None:
        self.records: list[tuple[int, str, dict[str, Any]]] = []

    def log(self, level: int, event: str, **kwargs: Any) -> None:
        self.records.append((level, event, kwargs))

    @property
    def lines(self) -> list[str]:
        return [event for _, event, _ in self.records]


def token_body(user: str | None = "alice", project: str | None = "demo") -> dict[str, Any]:
    """Keystone v3 토큰 응답 본문을 만듭니다."""
    token: dict[str, Any] = {
        "methods": ["ec2credential"],
        "expires_at": "2030-01-01T00:00:00.000000Z",
        "catalog": [{"type": "identity", "endpoints": []}],
    }
    if user is not None:
        token["user"] = {"id": "u-1", "name": user, "domain": {"id": "default"}}
    if project is not None:
        token["project"] = {"id": "p-1", "name": project, "domain": {"id": "default"}}
    return {"token": token}


def token_handler(
    token_id: str = "tok-123",
    status_code: int = 200,
    body: dict[str, Any] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """고정 토큰 응답을 돌려주는 MockTransport 핸들러를 만듭니다."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code,
            json=body if body is not None else token_body(),
            headers={Keystone.SUBJECT_TOKEN_HEADER: token_id},
        )

    return handler


@pytest.fixture
def make_token_body():
    """토큰 응답 본문 factory fixture"""
    return token_body


@pytest.fixture
def make_token_handler():
    """MockTransport 핸들러 factory fixture"""
    return token_handler


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """실행 환경의 자격 증명과 .env 파일이 테스트에 섞이지 않도록 격리"""
    for name in (EnvVar.AUTH_URL, EnvVar.ACCESS, EnvVar.SECRET):
        monkeypatch.delenv(name, raising=False)
    for name in [key for key in os.environ if key.upper().startswith("EC2AUTH_")]:
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def credentials() -> EC2Credentials:
    """EC2 자격 증명 fixture"""
    return EC2Credentials(access="AKIDEXAMPLE", secret=SecretStr("s3cr3t"), auth_url=AUTH_URL)


@pytest.fixture
def recorder() -> RecordingLogger:
    """기록용 로거 fixture"""
    return RecordingLogger()


@pytest.fixture
def traffic_logger(recorder) -> HttpTrafficLogger:
    """기록용 로거를 사용하는 트래픽 로거 fixture"""
    return HttpTrafficLogger(logger=recorder)
