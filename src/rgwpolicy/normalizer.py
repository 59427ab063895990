"""Canonical JSON form for policy documents.

Policy text arrives from three places: hand-written configuration, the
compiler, and the RadosGW API (sometimes URL query-escaped, depending on
server version). Normalizing every value to one canonical string before it
is stored or compared keeps plans free of formatting-only diffs.

Canonical form:
- object keys sorted lexicographically at every level
- array elements kept in their original order
- no insignificant whitespace
- numbers re-emitted exactly as written (``1.0`` stays ``1.0``)
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import unquote_plus

import structlog

from .exceptions import MalformedPolicyError

logger = structlog.get_logger(__name__)

PolicySource = Literal["configuration", "remote"]

_INVALID_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class JsonNumber:
    """A JSON number held as its source lexeme."""

    lexeme: str


@dataclass(frozen=True)
class DecodedPolicy:
    text: str
    best_effort: bool = False


@dataclass(frozen=True)
class NormalizedPolicy:
    policy: str
    best_effort: bool = False


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _parse(raw: str, source: PolicySource) -> Any:
    if not isinstance(raw, str):
        raise MalformedPolicyError(f"expected text, got {type(raw).__name__}", source=source)
    if raw.strip() == "":
        raise MalformedPolicyError("policy is empty", source=source)
    try:
        return json.loads(
            raw,
            parse_int=JsonNumber,
            parse_float=JsonNumber,
            parse_constant=_reject_constant,
        )
    except ValueError as exc:
        logger.warning("policy_normalize_failed", source=source, error=str(exc))
        raise MalformedPolicyError(str(exc), source=source) from exc


def _encode_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _encode(value: Any) -> str:
    if isinstance(value, dict):
        members = (f"{_encode_string(key)}:{_encode(value[key])}" for key in sorted(value))
        return "{" + ",".join(members) + "}"
    if isinstance(value, list):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    if isinstance(value, JsonNumber):
        return value.lexeme
    if isinstance(value, str):
        return _encode_string(value)
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    raise TypeError(f"unsupported JSON value: {type(value).__name__}")


def normalize_policy(raw: str, source: PolicySource = "configuration") -> str:
    """Normalize JSON policy text to its canonical string.

    Args:
        raw: JSON policy text
        source: Where the text came from; only affects the error message

    Returns:
        Canonical JSON text; ``normalize_policy(normalize_policy(x)) ==
        normalize_policy(x)``

    Raises:
        MalformedPolicyError: If raw is not syntactically valid JSON
    """
    return _encode(_parse(raw, source))


def decode_remote_policy(raw: str) -> DecodedPolicy:
    """URL-decode a policy document returned by the RadosGW API.

    Some server versions return the document query-escaped, others return
    it plain. When the text cannot be unescaped (a stray ``%`` or bytes that
    are not UTF-8) it is used unchanged and flagged as best-effort.
    """
    if _INVALID_ESCAPE_RE.search(raw):
        logger.warning("remote_policy_decode_fallback", reason="invalid percent escape")
        return DecodedPolicy(text=raw, best_effort=True)
    try:
        return DecodedPolicy(text=unquote_plus(raw, errors="strict"))
    except UnicodeDecodeError as exc:
        logger.warning("remote_policy_decode_fallback", reason=str(exc))
        return DecodedPolicy(text=raw, best_effort=True)


def normalize_remote_policy(raw: str) -> NormalizedPolicy:
    """Decode and normalize a policy document read back from the API.

    Raises:
        MalformedPolicyError: If the decoded text is not valid JSON
    """
    decoded = decode_remote_policy(raw)
    policy = normalize_policy(decoded.text, source="remote")
    return NormalizedPolicy(policy=policy, best_effort=decoded.best_effort)


def policies_equivalent(left: str, right: str) -> bool:
    """Return True if two policy texts have the same canonical form."""
    return normalize_policy(left) == normalize_policy(right)
