"""EC2 인증 예외 클래스 모듈.

설정, 전송 계층, 인증 프로토콜 단계에서 발생할 수 있는 예외를 정의합니다.
부하 테스트 하네스는 예외 타입을 기준으로 실패를 분류하므로
실패 조건마다 별도의 클래스를 둡니다.
"""


class EC2AuthError(Exception):
    """EC2 인증 기본 예외 클래스.

    모든 ec2auth 예외의 부모 클래스입니다.

    Attributes:
        message: 오류 메시지
        status_code: 관련 HTTP 상태 코드 (없으면 None)
    """

    def __init__(
        self,
        message: str = "EC2 인증 오류가 발생했습니다",
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ConfigurationError(EC2AuthError):
    """필수 설정 누락 예외.

    누락된 항목을 한 번에 모두 보고할 수 있도록 문제 목록을 보관합니다.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__(message="; ".join(self.problems))


class BodyFormatError(EC2AuthError):
    """JSON 본문 파싱 또는 재직렬화 실패 (치명적이지 않음)."""

    def __init__(self, message: str = "JSON 본문을 해석할 수 없습니다") -> None:
        super().__init__(message=message)


class HTTPTransportError(EC2AuthError):
    """계측 전송 계층 예외의 부모 클래스."""


class RetriesExhaustedError(HTTPTransportError):
    """연결 재시도 횟수 소진 예외.

    Attributes:
        attempts: 수행한 전체 시도 횟수
        last_error: 마지막 시도에서 발생한 하위 전송 오류
    """

    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            message=(
                "Connection error, retries exhausted. Aborting. "
                f"Last error was: {last_error}"
            )
        )


class BodyReadError(HTTPTransportError):
    """본문 버퍼링 중 스트림 읽기 실패 예외.

    본문을 재구성할 수 없으므로 해당 요청은 중단되며 재시도하지 않습니다.
    """

    def __init__(self, message: str = "HTTP 본문을 읽는 중 오류가 발생했습니다") -> None:
        super().__init__(message=message)


class AuthServiceUnavailableError(EC2AuthError):
    """인증 서비스 불가 예외 (HTTP 503).

    인증 서비스에 연결할 수 없거나 응답하지 않는 경우 발생합니다.
    """

    def __init__(self, message: str = "인증 서비스에 연결할 수 없습니다") -> None:
        super().__init__(message=message, status_code=503)


class AuthProtocolError(EC2AuthError):
    """인증 서비스가 오류 응답을 반환한 경우의 부모 클래스."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message=message, status_code=status_code)


class AuthRejectedError(AuthProtocolError):
    """자격 증명 거부 예외 (HTTP 401/403)."""


class UnexpectedStatusError(AuthProtocolError):
    """예상하지 못한 HTTP 상태 코드 예외."""


class InvalidResponseError(EC2AuthError):
    """토큰 응답 형식 오류 예외."""

    def __init__(self, message: str = "토큰 응답 형식이 올바르지 않습니다") -> None:
        super().__init__(message=message)


class MissingUserError(InvalidResponseError):
    """토큰 응답에 사용자 정보가 없는 경우."""

    def __init__(self, message: str = "토큰 응답에 사용자 정보가 없습니다") -> None:
        super().__init__(message=message)


class MissingProjectError(InvalidResponseError):
    """토큰 응답에 프로젝트 범위가 없는 경우."""

    def __init__(self, message: str = "토큰 응답에 프로젝트 범위가 없습니다") -> None:
        super().__init__(message=message)


class TokenExtractionError(InvalidResponseError):
    """응답에서 토큰 ID를 추출할 수 없는 경우."""

    def __init__(self, message: str = "응답에서 토큰 ID를 추출할 수 없습니다") -> None:
        super().__init__(message=message)
