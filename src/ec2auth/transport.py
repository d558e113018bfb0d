"""계측 HTTP 전송 계층 모듈.

httpx 전송 계층을 감싸 추가 헤더 주입, 요청/응답 로깅,
민감 정보 마스킹, 연결 오류 재시도를 수행합니다.

하나의 인스턴스를 여러 워커 스레드가 동시에 사용하므로 모든 설정은
생성 시점에 고정되며 요청마다 공유 상태를 변경하지 않습니다.
"""

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import httpx

from ec2auth.config import EC2AuthSettings
from ec2auth.constants import DEFAULT_SENSITIVE_HEADERS, MASK, TransportDefaults
from ec2auth.exceptions import BodyReadError, RetriesExhaustedError
from ec2auth.logging import HttpTrafficLogger
from ec2auth.redaction import format_json

BodyFormatter = Callable[[bytes], tuple[str, Exception | None]]


@dataclass(frozen=True)
class TransportConfig:
    """계측 전송 계층 설정.

    직접 생성하기보다 입력을 복사하고 정규화하는 `create()`를 사용합니다.

    Attributes:
        max_retries: 첫 시도 실패 후 추가로 재시도할 횟수
        sensitive_headers: 로그에서 값을 마스킹할 헤더 이름 (소문자)
        extra_headers: 모든 요청에 설정(추가가 아닌 덮어쓰기)할 헤더
        host_override: Host 헤더 재정의 값
        body_formatter: JSON 본문 포맷 함수
        max_retry_time: 재시도 전체 제한 시간 (초, None이면 횟수로만 제한)
    """

    max_retries: int = TransportDefaults.MAX_RETRIES
    sensitive_headers: frozenset[str] = DEFAULT_SENSITIVE_HEADERS
    extra_headers: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    host_override: str | None = None
    body_formatter: BodyFormatter = format_json
    max_retry_time: float | None = None

    @classmethod
    def create(
        cls,
        *,
        max_retries: int = TransportDefaults.MAX_RETRIES,
        sensitive_headers: Iterable[str] | None = None,
        extra_headers: Mapping[str, str | Iterable[str]] | None = None,
        host_override: str | None = None,
        body_formatter: BodyFormatter | None = None,
        max_retry_time: float | None = None,
    ) -> "TransportConfig":
        """입력을 복사해 변경 불가능한 설정을 만듭니다.

        Raises:
            ValueError: max_retries가 음수인 경우
        """
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")

        headers: dict[str, tuple[str, ...]] = {}
        for name, values in (extra_headers or {}).items():
            headers[name] = (values,) if isinstance(values, str) else tuple(values)

        return cls(
            max_retries=max_retries,
            sensitive_headers=(
                frozenset(h.lower() for h in sensitive_headers)
                if sensitive_headers is not None
                else DEFAULT_SENSITIVE_HEADERS
            ),
            extra_headers=MappingProxyType(headers),
            host_override=host_override or None,
            body_formatter=body_formatter or format_json,
            max_retry_time=max_retry_time,
        )


def _is_json_request(content_type: str) -> bool:
    return content_type.startswith("application/json") or (
        content_type.startswith("application/") and content_type.endswith("-json-patch")
    )


def _is_json_response(content_type: str) -> bool:
    return content_type.startswith("application/json")


def _has_body(request: httpx.Request) -> bool:
    if "Transfer-Encoding" in request.headers:
        return True
    return request.headers.get("Content-Length", "0") not in ("", "0")


def _close_stream(stream: object) -> None:
    close = getattr(stream, "close", None)
    if callable(close):
        close()


class BodyLogger:
    """요청/응답 본문을 버퍼링해 로그로 남기고 다시 읽을 수 있게 복원합니다.

    Args:
        log: 트래픽 로거
        formatter: 본문 포맷 함수 (마스킹 포함)
    """

    def __init__(self, log: HttpTrafficLogger, formatter: BodyFormatter) -> None:
        self.log = log
        self.formatter = formatter

    def log_request_body(self, request: httpx.Request) -> None:
        """요청 본문을 기록하고 원본 바이트로 새 스트림을 설정합니다.

        Raises:
            BodyReadError: 본문 스트림을 읽을 수 없는 경우
        """
        if not _is_json_request(request.headers.get("Content-Type", "")):
            self.log.request("Not logging because request body isn't JSON")
            return

        stream = request.stream
        try:
            body = b"".join(stream)  # type: ignore[arg-type]
        except (httpx.StreamError, OSError) as e:
            raise BodyReadError(f"요청 본문을 읽을 수 없습니다: {e}") from e
        finally:
            _close_stream(stream)

        text, error = self.formatter(body)
        if error is not None:
            self.log.request_warning(str(error))
        self.log.request(f"Body: {text}")

        request.stream = httpx.ByteStream(body)

    def log_response_body(self, response: httpx.Response) -> None:
        """응답 본문을 기록합니다.

        `Response.read()`로 본문을 메모리에 올리고 원본 스트림을 닫으므로
        호출자는 같은 바이트를 다시 읽을 수 있습니다.

        Raises:
            BodyReadError: 본문 스트림을 읽을 수 없는 경우
        """
        if not _is_json_response(response.headers.get("Content-Type", "")):
            self.log.response("Not logging because response body isn't JSON")
            return

        try:
            body = response.read()
        except (httpx.StreamError, httpx.TransportError, OSError) as e:
            response.close()
            raise BodyReadError(f"응답 본문을 읽을 수 없습니다: {e}") from e

        text, error = self.formatter(body)
        if error is not None:
            self.log.response_warning(str(error))
        if text.strip():
            self.log.response(f"Body: {text}")


class LoggingTransport(httpx.BaseTransport):
    """요청/응답을 기록하고 연결 오류를 재시도하는 httpx 전송 계층 데코레이터.

    logger가 None이면 모든 로깅을 건너뜁니다.

    Args:
        transport: 실제 요청을 보낼 하위 전송 계층
        config: 전송 계층 설정 (기본값: TransportConfig())
        logger: 트래픽 로거 (None이면 로깅 비활성화)

    Example:
        >>> transport = LoggingTransport(
        ...     httpx.HTTPTransport(),
        ...     TransportConfig.create(max_retries=2),
        ...     logger=HttpTrafficLogger(),
        ... )
        >>> client = httpx.Client(transport=transport)
    """

    def __init__(
        self,
        transport: httpx.BaseTransport,
        config: TransportConfig | None = None,
        logger: HttpTrafficLogger | None = None,
    ) -> None:
        self.transport = transport
        self.config = config or TransportConfig()
        self.logger = logger
        self._body_logger = (
            BodyLogger(logger, self.config.body_formatter) if logger is not None else None
        )

    def format_headers(self, headers: httpx.Headers, separator: str = "\n") -> str:
        """민감한 헤더 값을 가리고 정렬된 문자열로 만듭니다.

        Args:
            headers: 요청 또는 응답 헤더
            separator: 줄 구분자

        Returns:
            "Name: value" 줄을 사전순으로 정렬해 이어 붙인 문자열
        """
        grouped: dict[str, list[str]] = {}
        for raw_name, raw_value in headers.raw:
            name = raw_name.decode(headers.encoding)
            grouped.setdefault(name, []).append(raw_value.decode(headers.encoding))

        lines = []
        for name, values in grouped.items():
            if name.lower() in self.config.sensitive_headers:
                lines.append(f"{name}: {MASK}")
            else:
                lines.append(f"{name}: {' '.join(values)}")

        return separator.join(sorted(lines))

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """요청 1회를 수행합니다 (필요 시 재시도 포함).

        Raises:
            RetriesExhaustedError: 연결 오류가 재시도 한도를 넘은 경우
            BodyReadError: 본문 버퍼링에 실패한 경우
        """
        try:
            self._apply_headers(request)

            if self.logger is not None and self._body_logger is not None:
                self.logger.request(f"URL: {request.method} {request.url}")
                self.logger.request(f"Headers:\n{self.format_headers(request.headers)}")
                if _has_body(request):
                    self._body_logger.log_request_body(request)

            response = self._send_with_retries(request)

            if self.logger is not None and self._body_logger is not None:
                self.logger.response(f"Code: {response.status_code}")
                self.logger.response(f"Headers:\n{self.format_headers(response.headers)}")
                self._body_logger.log_response_body(response)

            return response
        finally:
            _close_stream(request.stream)

    def close(self) -> None:
        """하위 전송 계층을 닫습니다."""
        self.transport.close()

    def _apply_headers(self, request: httpx.Request) -> None:
        for name, values in self.config.extra_headers.items():
            request.headers[name] = ", ".join(values)
        if self.config.host_override:
            request.headers["Host"] = self.config.host_override

    def _send_with_retries(self, request: httpx.Request) -> httpx.Response:
        deadline = (
            time.monotonic() + self.config.max_retry_time
            if self.config.max_retry_time is not None
            else None
        )
        attempt = 0

        while True:
            attempt += 1
            try:
                return self.transport.handle_request(request)
            except httpx.TransportError as e:
                last_error = e

            # attempt N failed; the next one would be retry number N
            out_of_time = deadline is not None and time.monotonic() >= deadline
            if attempt > self.config.max_retries or out_of_time:
                if self.logger is not None:
                    self.logger.response("Connection error, retries exhausted. Aborting")
                raise RetriesExhaustedError(attempts=attempt, last_error=last_error) from last_error

            if self.logger is not None:
                self.logger.response(f"Connection error, retry number {attempt}: {last_error}")


def build_transport(
    settings: EC2AuthSettings,
    logger: HttpTrafficLogger | None = None,
) -> LoggingTransport:
    """설정으로 하위 httpx 전송 계층을 만들고 계측 전송 계층으로 감쌉니다.

    연결 풀은 동시 실행 스레드 수 이상으로 잡아 워커가 풀을 기다리지 않게 합니다.

    Args:
        settings: 실행 설정
        logger: 트래픽 로거 (None이면 로깅 비활성화)

    Returns:
        공유 가능한 LoggingTransport 인스턴스
    """
    pool_size = max(settings.threads, 1)
    inner = httpx.HTTPTransport(
        verify=not settings.insecure_tls,
        limits=httpx.Limits(
            max_connections=pool_size,
            max_keepalive_connections=pool_size,
            keepalive_expiry=TransportDefaults.KEEPALIVE_EXPIRY_SECONDS,
        ),
    )
    config = TransportConfig.create(
        max_retries=settings.max_retries,
        host_override=settings.host or None,
        max_retry_time=settings.max_retry_time,
    )
    return LoggingTransport(inner, config, logger=logger)
