"""Composite identifiers for import and cross-resource lookups.

Each resource kind has its own grammar. ``:`` separates top-level segments;
``$`` (tenant-qualified users such as ``tenant1$user1``) is opaque content of
a single segment and is never split here.

Formats:
- S3 access key: ``s3:<user_id>:<access_key>``
- Swift access key: ``swift:<user_id>:<subuser>``
- Bucket link: ``<bucket>`` or ``<bucket>:<owner>``
- Role policy: ``<role_name>:<policy_name>``
- OIDC provider: ``arn:aws:iam:::oidc-provider/<url>`` or ``[https://]<url>``
- Subuser: ``<user_id>:<subuser>``
- Quota: ``<user_id>:<user|bucket>``
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Union

import structlog
from pydantic import BaseModel, ValidationError

from .exceptions import InvalidImportFormatError
from .logging_config import mask_secret
from .models import (
    OIDC_PROVIDER_ARN_RE,
    BucketLinkId,
    Identifier,
    OidcProviderId,
    QuotaId,
    ResourceKind,
    RolePolicyId,
    S3AccessKeyId,
    SubuserId,
    SwiftAccessKeyId,
    strip_url_scheme,
)

logger = structlog.get_logger(__name__)

IdentifierInput = Union[Identifier, Mapping[str, Any]]


@dataclass(frozen=True)
class _Codec:
    model: type[BaseModel]
    expected: str
    split: Callable[[str], dict[str, Any] | None]
    join: Callable[[Any], str]


def _split_exact(raw: str, colons: int) -> list[str] | None:
    parts = raw.split(":")
    if len(parts) != colons + 1:
        return None
    return parts


def _split_access_key(prefix: str, second: str) -> Callable[[str], dict[str, Any] | None]:
    def split(raw: str) -> dict[str, Any] | None:
        parts = _split_exact(raw, 2)
        if parts is None or parts[0] != prefix:
            return None
        return {"user_id": parts[1], second: parts[2]}

    return split


def _split_pair(first: str, second: str) -> Callable[[str], dict[str, Any] | None]:
    def split(raw: str) -> dict[str, Any] | None:
        parts = _split_exact(raw, 1)
        if parts is None:
            return None
        return {first: parts[0], second: parts[1]}

    return split


def _split_bucket_link(raw: str) -> dict[str, Any] | None:
    parts = raw.split(":")
    if len(parts) == 1:
        return {"bucket": parts[0]}
    if len(parts) == 2:
        return {"bucket": parts[0], "owner": parts[1]}
    return None


def _split_oidc_provider(raw: str) -> dict[str, Any] | None:
    if raw.startswith("arn:"):
        return {"arn": raw}
    return {"url": raw}


def _join_bucket_link(identifier: BucketLinkId) -> str:
    if identifier.owner is None:
        return identifier.bucket
    return f"{identifier.bucket}:{identifier.owner}"


def _join_oidc_provider(identifier: OidcProviderId) -> str:
    if identifier.arn is not None:
        return identifier.arn
    return str(identifier.url)


_CODECS: dict[ResourceKind, _Codec] = {
    ResourceKind.S3_ACCESS_KEY: _Codec(
        model=S3AccessKeyId,
        expected="s3:<user_id>:<access_key>",
        split=_split_access_key("s3", "access_key"),
        join=lambda ident: f"s3:{ident.user_id}:{ident.access_key}",
    ),
    ResourceKind.SWIFT_ACCESS_KEY: _Codec(
        model=SwiftAccessKeyId,
        expected="swift:<user_id>:<subuser>",
        split=_split_access_key("swift", "subuser"),
        join=lambda ident: f"swift:{ident.user_id}:{ident.subuser}",
    ),
    ResourceKind.BUCKET_LINK: _Codec(
        model=BucketLinkId,
        expected="<bucket> or <bucket>:<owner>",
        split=_split_bucket_link,
        join=_join_bucket_link,
    ),
    ResourceKind.ROLE_POLICY: _Codec(
        model=RolePolicyId,
        expected="<role_name>:<policy_name>",
        split=_split_pair("role_name", "policy_name"),
        join=lambda ident: f"{ident.role_name}:{ident.policy_name}",
    ),
    ResourceKind.OIDC_PROVIDER: _Codec(
        model=OidcProviderId,
        expected="arn:aws:iam:::oidc-provider/<url> or <url>",
        split=_split_oidc_provider,
        join=_join_oidc_provider,
    ),
    ResourceKind.SUBUSER: _Codec(
        model=SubuserId,
        expected="<user_id>:<subuser>",
        split=_split_pair("user_id", "subuser"),
        join=lambda ident: f"{ident.user_id}:{ident.subuser}",
    ),
    ResourceKind.QUOTA: _Codec(
        model=QuotaId,
        expected="<user_id>:<user|bucket>",
        split=_split_pair("user_id", "quota_type"),
        join=lambda ident: f"{ident.user_id}:{ident.quota_type}",
    ),
}


def _loggable(kind: ResourceKind, raw: str) -> str:
    if kind is ResourceKind.S3_ACCESS_KEY:
        return mask_secret(raw)
    return raw


def _codec(kind: ResourceKind | str) -> tuple[ResourceKind, _Codec]:
    try:
        resolved = ResourceKind(kind)
    except ValueError as exc:
        raise ValueError(f"unknown resource kind: {kind}") from exc
    return resolved, _CODECS[resolved]


def expected_format(kind: ResourceKind | str) -> str:
    """Return the human-readable grammar for a resource kind."""
    _, codec = _codec(kind)
    return codec.expected


def parse_identifier(kind: ResourceKind | str, raw: str) -> Identifier:
    """Parse an import or lookup string for a resource kind.

    Args:
        kind: Resource kind selecting the grammar
        raw: Identifier string as typed by the user

    Returns:
        The identifier model for that kind

    Raises:
        InvalidImportFormatError: If raw does not match the kind's grammar
        ValueError: If kind is not a known resource kind
    """
    resolved, codec = _codec(kind)
    if not isinstance(raw, str) or not raw:
        logger.warning("identifier_parse_failed", kind=resolved.value, reason="empty")
        raise InvalidImportFormatError(resolved.value, codec.expected, "identifier is empty")

    shown = _loggable(resolved, raw)
    fields = codec.split(raw)
    if fields is None:
        logger.warning("identifier_parse_failed", kind=resolved.value, identifier=shown)
        raise InvalidImportFormatError(resolved.value, codec.expected, f"got: {shown}")

    try:
        return codec.model(**fields)  # type: ignore[return-value]
    except ValidationError as exc:
        logger.warning(
            "identifier_validation_failed",
            kind=resolved.value,
            identifier=shown,
            errors=[error["msg"] for error in exc.errors()],
        )
        raise InvalidImportFormatError(resolved.value, codec.expected, f"got: {shown}") from exc
    except Exception as exc:
        logger.error(
            "unexpected_identifier_parse_error",
            kind=resolved.value,
            identifier=shown,
            error=str(exc),
            exc_info=True,
        )
        raise InvalidImportFormatError(
            resolved.value, codec.expected, f"unexpected error: {exc}"
        ) from exc


def render_identifier(kind: ResourceKind | str, identifier: IdentifierInput) -> str:
    """Render a resource's key fields as its external identifier string.

    ``parse_identifier(kind, render_identifier(kind, x)) == x`` for every
    valid identifier.

    Raises:
        InvalidImportFormatError: If the fields cannot be rendered in the
            kind's grammar (wrong model, empty segment, ':' in a segment)
    """
    resolved, codec = _codec(kind)
    if isinstance(identifier, Mapping):
        try:
            identifier = codec.model(**identifier)  # type: ignore[assignment]
        except ValidationError as exc:
            logger.warning("identifier_render_failed", kind=resolved.value, error=str(exc))
            raise InvalidImportFormatError(
                resolved.value, codec.expected, "fields do not form a valid identifier"
            ) from exc
    if not isinstance(identifier, codec.model):
        raise InvalidImportFormatError(
            resolved.value,
            codec.expected,
            f"expected {codec.model.__name__}, got {type(identifier).__name__}",
        )
    return codec.join(identifier)


def parse_access_key_identifier(raw: str) -> S3AccessKeyId | SwiftAccessKeyId:
    """Parse an access key import string of either the S3 or Swift form."""
    prefix = raw.split(":", 1)[0] if isinstance(raw, str) else ""
    if prefix == "swift":
        return parse_identifier(ResourceKind.SWIFT_ACCESS_KEY, raw)  # type: ignore[return-value]
    if prefix == "s3":
        return parse_identifier(ResourceKind.S3_ACCESS_KEY, raw)  # type: ignore[return-value]
    logger.warning("identifier_parse_failed", kind="access_key", reason="unknown key type")
    raise InvalidImportFormatError(
        "access_key",
        "s3:<user_id>:<access_key> or swift:<user_id>:<subuser>",
        f"key type must be 's3' or 'swift', got: {prefix}",
    )


def oidc_provider_arn(url: str) -> str:
    """Build the ARN RadosGW assigns to an OIDC provider URL."""
    return f"arn:aws:iam:::oidc-provider/{strip_url_scheme(url)}"


def url_from_oidc_provider_arn(arn: str) -> str:
    """Extract the URL portion of an OIDC provider ARN, or '' if there is none."""
    match = OIDC_PROVIDER_ARN_RE.match(arn)
    if match:
        return match.group("url")
    parts = arn.split("/", 1)
    if len(parts) == 2:
        return parts[1]
    return ""


def _comparable_url(url: str) -> str:
    return strip_url_scheme(url).rstrip("/").lower()


def find_oidc_provider_arn(target_url: str, provider_arns: Iterable[str]) -> str | None:
    """Find the provider ARN whose URL matches target_url.

    Matching ignores the URL scheme, letter case and a trailing '/'.
    """
    wanted = _comparable_url(target_url)
    for arn in provider_arns:
        if _comparable_url(url_from_oidc_provider_arn(arn)) == wanted:
            return arn
    logger.debug("oidc_provider_not_found", url=target_url)
    return None
