"""Keystone EC2 인증 클라이언트 단위 테스트"""

import json

import httpx
import pytest

from ec2auth.client import AuthClient, authenticate, identity_endpoint
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
from ec2auth.models import AuthResult
from ec2auth.transport import LoggingTransport, TransportConfig


def _client(handler, **kwargs) -> AuthClient:
    return AuthClient(
        "https://keystone.example.com:5000", transport=httpx.MockTransport(handler), **kwargs
    )


class TestIdentityEndpoint:
    """인증 URL 정규화 테스트"""

    @pytest.mark.parametrize(
        ("auth_url", "expected"),
        [
            ("https://ks:5000", "https://ks:5000/v3"),
            ("https://ks:5000/", "https://ks:5000/v3"),
            ("https://ks:5000/v3", "https://ks:5000/v3"),
            ("https://ks:5000/v3/", "https://ks:5000/v3"),
            ("https://ks:5000/v2.0", "https://ks:5000/v3"),
            ("https://ks/identity", "https://ks/identity/v3"),
        ],
    )
    def test_normalized(self, auth_url, expected):
        """여러 형태의 URL을 v3 루트로 정규화"""
        assert identity_endpoint(auth_url) == expected


class TestAuthenticate:
    """인증 요청 및 응답 처리 테스트"""

    def test_success_returns_token(self, credentials, make_token_handler):
        """성공 시 사용자, 프로젝트, 토큰 반환"""
        # Arrange
        client = _client(make_token_handler(token_id="tok-123"))

        # Act
        result = client.authenticate(credentials)

        # Assert
        assert result == AuthResult(username="alice", project_name="demo", token_id="tok-123")

    def test_request_shape(self, credentials, make_token_handler):
        """ec2tokens 경로로 서명된 자격 증명을 전송하며 secret은 보내지 않음"""
        # Arrange
        captured = []
        respond = make_token_handler()

        def handler(request):
            captured.append(request)
            return respond(request)

        client = _client(handler)

        # Act
        client.authenticate(credentials)

        # Assert
        request = captured[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert str(request.url) == "https://keystone.example.com:5000/v3/ec2tokens"
        assert request.headers["Accept"] == "application/json"
        assert body["credentials"]["access"] == "AKIDEXAMPLE"
        assert "Authorization" in body["credentials"]["headers"]
        assert b"s3cr3t" not in request.content

    def test_new_token_each_call(self, credentials):
        """호출마다 새로 인증 (캐시 없음)"""
        # Arrange
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(
                200,
                json={"token": {"user": {"name": "a"}, "project": {"name": "p"}}},
                headers={"X-Subject-Token": f"tok-{len(calls)}"},
            )

        client = _client(handler)

        # Act
        tokens = [client.authenticate(credentials).token_id for _ in range(3)]

        # Assert
        assert tokens == ["tok-1", "tok-2", "tok-3"]

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_rejected(self, credentials, status_code):
        """401/403은 자격 증명 거부"""
        # Arrange
        client = _client(
            lambda r: httpx.Response(
                status_code, json={"error": {"code": status_code, "message": "bad signature"}}
            )
        )

        # Act & Assert
        with pytest.raises(AuthRejectedError, match="bad signature") as exc_info:
            client.authenticate(credentials)
        assert exc_info.value.status_code == status_code

    def test_unexpected_status(self, credentials):
        """그 밖의 상태 코드"""
        client = _client(lambda r: httpx.Response(500, text="boom"))

        with pytest.raises(UnexpectedStatusError, match="500") as exc_info:
            client.authenticate(credentials)
        assert exc_info.value.status_code == 500

    def test_invalid_json(self, credentials):
        """JSON이 아닌 응답"""
        client = _client(lambda r: httpx.Response(200, text="not json"))

        with pytest.raises(InvalidResponseError):
            client.authenticate(credentials)

    def test_missing_token_object(self, credentials):
        """token 객체가 없는 응답"""
        client = _client(lambda r: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(InvalidResponseError):
            client.authenticate(credentials)

    def test_missing_user(self, credentials, make_token_handler, make_token_body):
        """사용자가 없는 응답"""
        client = _client(make_token_handler(body=make_token_body(user=None)))

        with pytest.raises(MissingUserError):
            client.authenticate(credentials)

    def test_missing_project(self, credentials, make_token_handler, make_token_body):
        """프로젝트 범위가 없는 응답"""
        client = _client(make_token_handler(body=make_token_body(project=None)))

        with pytest.raises(MissingProjectError):
            client.authenticate(credentials)

    def test_missing_subject_token_header(self, credentials, make_token_body):
        """X-Subject-Token 헤더가 없는 응답"""
        client = _client(lambda r: httpx.Response(200, json=make_token_body()))

        with pytest.raises(TokenExtractionError):
            client.authenticate(credentials)


class TestConnectionFailures:
    """연결 실패 테스트"""

    def test_transport_error_maps_to_unavailable(self, credentials):
        """하위 전송 오류는 서비스 불가 오류"""
        # Arrange
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)

        # Act & Assert
        with pytest.raises(AuthServiceUnavailableError) as exc_info:
            client.authenticate(credentials)
        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_retries_exhausted_maps_to_unavailable(self, credentials):
        """재시도 소진은 서비스 불가 오류로 감싸짐"""
        # Arrange
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = LoggingTransport(
            httpx.MockTransport(handler), TransportConfig.create(max_retries=1)
        )
        client = AuthClient("https://keystone.example.com:5000", transport=transport)

        # Act & Assert
        with pytest.raises(AuthServiceUnavailableError, match="connection refused") as exc_info:
            client.authenticate(credentials)
        assert isinstance(exc_info.value.__cause__, RetriesExhaustedError)
        assert exc_info.value.__cause__.attempts == 2


class TestClientLifecycle:
    """클라이언트 수명 주기 테스트"""

    def test_context_manager_closes(self, make_token_handler):
        """컨텍스트 종료 시 연결 종료"""
        with _client(make_token_handler()) as client:
            pass

        assert client._client.is_closed

    def test_close_is_idempotent(self, make_token_handler):
        """close는 여러 번 호출해도 안전"""
        client = _client(make_token_handler())

        client.close()
        client.close()

        assert client._client.is_closed

    def test_module_level_authenticate(self, credentials, make_token_handler):
        """1회용 클라이언트 헬퍼"""
        result = authenticate(
            credentials.auth_url, credentials, transport=httpx.MockTransport(make_token_handler())
        )

        assert result.token_id == "tok-123"
