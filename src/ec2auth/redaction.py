"""HTTP 본문 마스킹 모듈.

Keystone 요청/응답 JSON에서 알려진 민감 필드를 마스킹하고
로그용으로 보기 좋게 정렬된 문자열을 만듭니다.
"""

import json
from typing import Any

from ec2auth.constants import MASK
from ec2auth.exceptions import BodyFormatError

# 경로의 마지막 키를 마스킹한다. 중간 경로는 모두 객체여야 한다.
_MASKED_PATHS: tuple[tuple[str, ...], ...] = (
    # v2 인증 방식
    ("auth", "passwordCredentials", "password"),
    ("auth", "token", "id"),
    # v3 인증 방식
    ("auth", "identity", "password", "user", "password"),
    ("auth", "identity", "application_credential", "secret"),
    ("auth", "identity", "token", "id"),
    # 카탈로그는 민감하지 않지만 너무 크다
    ("token", "catalog"),
)


def _parent(data: dict[str, Any], path: tuple[str, ...]) -> dict[str, Any] | None:
    node: Any = data
    for key in path:
        node = node.get(key) if isinstance(node, dict) else None
        if node is None:
            return None
    return node if isinstance(node, dict) else None


def _mask_path(data: dict[str, Any], path: tuple[str, ...]) -> None:
    *parents, leaf = path
    parent = _parent(data, tuple(parents))
    if parent is not None and leaf in parent:
        parent[leaf] = MASK


def _mask_ec2_credentials(data: dict[str, Any]) -> None:
    credentials = data.get("credentials")
    if not isinstance(credentials, dict):
        return

    access: str = ""
    if "access" in credentials:
        if isinstance(credentials["access"], str):
            access = credentials["access"]
        credentials["access"] = MASK

    if "body_hash" in credentials:
        credentials["body_hash"] = MASK

    # 서명 헤더에 access 키가 그대로 들어 있다
    headers = credentials.get("headers")
    if access and isinstance(headers, dict):
        authorization = headers.get("Authorization")
        if isinstance(authorization, str):
            headers["Authorization"] = authorization.replace(access, MASK)


def redact(data: dict[str, Any]) -> dict[str, Any]:
    """알려진 민감 필드를 제자리에서 마스킹합니다.

    Args:
        data: 파싱된 JSON 최상위 객체

    Returns:
        같은 객체 (편의를 위해 반환)
    """
    for path in _MASKED_PATHS:
        _mask_path(data, path)
    _mask_ec2_credentials(data)
    return data


def format_json(raw: bytes) -> tuple[str, BodyFormatError | None]:
    """JSON 본문을 마스킹하고 보기 좋게 포맷합니다.

    최상위가 객체가 아니면 마스킹 없이 포맷만 합니다.
    파싱 또는 재직렬화에 실패하면 원본 텍스트를 그대로 돌려주고
    오류를 함께 반환하므로 호출자는 경고만 남기고 계속 진행할 수 있습니다.

    Args:
        raw: HTTP 본문 바이트

    Returns:
        (포맷된 텍스트, 오류 또는 None) 튜플

    Example:
        >>> text, error = format_json(b'{"auth": {"token": {"id": "abc"}}}')
        >>> error is None and "abc" not in text
        True
    """
    raw_text = raw.decode("utf-8", errors="surrogateescape")

    try:
        data = json.loads(raw)
    except ValueError as e:
        return raw_text, BodyFormatError(f"unable to parse JSON: {e}")

    if isinstance(data, dict):
        redact(data)

    try:
        pretty = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        return raw_text, BodyFormatError(f"unable to re-marshal JSON: {e}")

    return pretty, None
