"""EC2 인증 데이터 모델 모듈.

자격 증명, 인증 결과, Keystone 토큰 응답 등의
Pydantic 모델을 정의합니다.
"""

from pydantic import BaseModel, ConfigDict, SecretStr


class EC2Credentials(BaseModel):
    """EC2 스타일 자격 증명 모델.

    프로세스당 한 번 생성되어 모든 워커가 읽기 전용으로 공유합니다.

    Attributes:
        access: EC2 access 키
        secret: EC2 secret 키 (repr에 노출되지 않음)
        auth_url: Keystone 인증 URL
    """

    model_config = ConfigDict(frozen=True)

    access: str
    secret: SecretStr
    auth_url: str


class AuthResult(BaseModel):
    """인증 1회의 결과 모델.

    토큰은 유효 기간이 있으므로 호출마다 새로 생성되며 캐시하지 않습니다.

    Attributes:
        username: 인증된 사용자 이름
        project_name: 토큰이 범위 지정된 프로젝트 이름
        token_id: 발급된 토큰 ID
    """

    model_config = ConfigDict(frozen=True)

    username: str
    project_name: str
    token_id: str


class TokenUser(BaseModel):
    """토큰 응답의 사용자 항목."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str


class TokenProject(BaseModel):
    """토큰 응답의 프로젝트 항목."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str


class TokenBody(BaseModel):
    """토큰 응답 본문의 token 객체.

    카탈로그 등 나머지 필드는 무시합니다.
    """

    model_config = ConfigDict(extra="ignore")

    user: TokenUser | None = None
    project: TokenProject | None = None


class TokenResponse(BaseModel):
    """Keystone v3 토큰 생성 응답 모델."""

    model_config = ConfigDict(extra="ignore")

    token: TokenBody
