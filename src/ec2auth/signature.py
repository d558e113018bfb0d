"""EC2 자격 증명 서명 모듈.

Keystone `ec2tokens` 요청 본문의 credentials 객체를 만듭니다.
기본은 AWS Signature v4이며, params에 SignatureVersion=2가 있으면
Signature v2로 서명합니다.
"""

import base64
import hashlib
import hmac
import secrets
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

from ec2auth.constants import EC2SignatureDefaults as Defaults


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def canonical_query_string(params: dict[str, str]) -> str:
    """정렬 및 URL 인코딩된 쿼리 문자열을 만듭니다."""
    return "&".join(
        f"{quote(key, safe='-_.~')}={quote(params[key], safe='-_.~')}" for key in sorted(params)
    )


def canonical_headers(headers: dict[str, str], signed_headers: str) -> str:
    """서명 대상 헤더만 "name:value" 형식으로 이어 붙입니다."""
    lowered = {name.lower(): value for name, value in headers.items()}
    lines = [f"{name}:{lowered[name]}" for name in signed_headers.split(";") if name in lowered]
    return "\n".join(lines) + "\n"


def signing_key_v4(secret: str, region: str, service: str, date: datetime) -> bytes:
    """Signature v4 서명 키를 파생합니다."""
    k_date = _hmac_sha256(f"AWS4{secret}".encode(), date.strftime(Defaults.DATE_FORMAT_V4))
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, Defaults.AWS_REQUEST_V4)


def string_to_sign_v4(
    *,
    verb: str,
    path: str,
    params: dict[str, str],
    headers: dict[str, str],
    signed_headers: str,
    body_hash: str,
    region: str,
    service: str,
    date: datetime,
) -> str:
    """Signature v4 서명 대상 문자열을 만듭니다."""
    scope = "/".join(
        [date.strftime(Defaults.DATE_FORMAT_V4), region, service, Defaults.AWS_REQUEST_V4]
    )
    # POST 요청은 쿼리 문자열을 서명하지 않는다
    query = "" if verb == "POST" else canonical_query_string(params)
    canonical_request = "\n".join(
        [verb, path, query, canonical_headers(headers, signed_headers), signed_headers, body_hash]
    )
    return "\n".join(
        [
            Defaults.ALGORITHM_V4,
            date.strftime(Defaults.TIMESTAMP_FORMAT_V4),
            scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )


def string_to_sign_v2(verb: str, host: str, path: str, params: dict[str, str]) -> str:
    """Signature v2 서명 대상 문자열을 만듭니다."""
    return "\n".join([verb, host, path, canonical_query_string(params)])


def build_ec2_credentials(
    access: str,
    secret: str,
    *,
    host: str = Defaults.HOST,
    verb: str = Defaults.VERB,
    path: str = Defaults.PATH,
    params: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
    region: str = Defaults.REGION,
    service: str = Defaults.SERVICE,
    body_hash: str | None = None,
    timestamp: datetime | None = None,
) -> dict[str, Any]:
    """ec2tokens 요청의 credentials 객체를 만듭니다.

    Args:
        access: EC2 access 키
        secret: EC2 secret 키 (본문에는 포함되지 않음)
        host: 서명 대상 호스트
        verb: 서명 대상 HTTP 메서드
        path: 서명 대상 경로
        params: 서명 대상 쿼리 파라미터
        headers: 서명 대상 헤더
        region: v4 자격 증명 범위의 리전
        service: v4 자격 증명 범위의 서비스
        body_hash: v4 본문 해시 (None이면 임의 값 생성)
        timestamp: 서명 시각 (None이면 현재 UTC 시각)

    Returns:
        `{"credentials": ...}`에 넣을 딕셔너리

    Raises:
        ValueError: 지원하지 않는 v2 SignatureMethod인 경우

    Example:
        >>> creds = build_ec2_credentials("ak", "sk")
        >>> creds["headers"]["Authorization"].startswith("AWS4-HMAC-SHA256 Credential=ak/")
        True
    """
    params = dict(params or {})
    headers = dict(headers or {})
    credentials: dict[str, Any] = {
        "access": access,
        "host": host,
        "path": path,
        "verb": verb,
        "params": params,
    }

    if params.get("SignatureVersion") == "2":
        method = params.get("SignatureMethod")
        if method is not None:
            digests = {"HmacSHA1": hashlib.sha1, "HmacSHA256": hashlib.sha256}
            if method not in digests:
                raise ValueError(f"unsupported SignatureMethod: {method}")
            mac = hmac.new(
                secret.encode("utf-8"),
                string_to_sign_v2(verb, host, path, params).encode("utf-8"),
                digests[method],
            )
            credentials["signature"] = base64.b64encode(mac.digest()).decode("ascii")
        return credentials

    date = (timestamp or datetime.now(UTC)).astimezone(UTC)
    body_hash = body_hash or secrets.token_hex(32)
    signed_headers = headers.get("X-Amz-SignedHeaders", "")

    to_sign = string_to_sign_v4(
        verb=verb,
        path=path,
        params=params,
        headers=headers,
        signed_headers=signed_headers,
        body_hash=body_hash,
        region=region,
        service=service,
        date=date,
    )
    key = signing_key_v4(secret, region, service, date)
    signature = hmac.new(key, to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    headers["X-Amz-Date"] = date.strftime(Defaults.TIMESTAMP_FORMAT_V4)
    headers["Authorization"] = (
        f"{Defaults.ALGORITHM_V4} Credential={access}/{date.strftime(Defaults.DATE_FORMAT_V4)}/"
        f"{region}/{service}/{Defaults.AWS_REQUEST_V4}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )

    credentials["headers"] = headers
    credentials["body_hash"] = body_hash
    credentials["signature"] = signature
    # S3 토큰 검증에서만 사용되며 EC2 검증 시 서버가 무시한다
    credentials["token"] = to_sign
    return credentials
