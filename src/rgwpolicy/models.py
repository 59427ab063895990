from __future__ import annotations

import re
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

POLICY_VERSION = "2012-10-17"

PolicyVersion = Literal["2012-10-17", "2008-10-17"]
PrincipalType = Literal["AWS", "Federated", "Service", "CanonicalUser", "*"]

OIDC_PROVIDER_ARN_RE = re.compile(r"^arn:aws:iam::[^:]*:oidc-provider/(?P<url>.+)\Z")

_URL_SCHEMES = ("https://", "http://")


def strip_url_scheme(value: str) -> str:
    """Remove a leading ``https://`` or ``http://`` from an OIDC provider URL.

    RadosGW drops the protocol when it builds provider ARNs, so
    ``https://example.com`` and ``example.com`` name the same provider.
    """
    for scheme in _URL_SCHEMES:
        if value.startswith(scheme):
            return value[len(scheme) :]
    return value


class Condition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    test: str
    variable: str
    values: list[str] = Field(default_factory=list)

    @field_validator("test", "variable")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value or value.strip() == "":
            raise ValueError("value must be non-empty")
        return value


class Principal(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: PrincipalType
    identifiers: list[str] = Field(default_factory=list)

    @property
    def is_wildcard(self) -> bool:
        return self.type == "*"


class Statement(BaseModel):
    """One access-control rule of a policy document.

    Mutual exclusion between ``actions``/``not_actions``,
    ``resources``/``not_resources`` and ``principals``/``not_principals``
    is checked when the statement is compiled, so that a half-written
    configuration block can still be loaded and reported on with its
    position in the document.
    """

    model_config = ConfigDict(extra="forbid")

    sid: str | None = None
    effect: Literal["Allow", "Deny"] = "Allow"
    principals: list[Principal] = Field(default_factory=list)
    not_principals: list[Principal] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)
    not_actions: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    not_resources: list[str] = Field(default_factory=list)
    conditions: list[Condition] = Field(default_factory=list)


class PolicyDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: PolicyVersion = POLICY_VERSION
    policy_id: str | None = None
    statements: list[Statement] = Field(default_factory=list)


class ResourceKind(str, Enum):
    S3_ACCESS_KEY = "s3_access_key"
    SWIFT_ACCESS_KEY = "swift_access_key"
    BUCKET_LINK = "bucket_link"
    ROLE_POLICY = "role_policy"
    OIDC_PROVIDER = "oidc_provider"
    SUBUSER = "subuser"
    QUOTA = "quota"


class IdentifierValidatorMixin(BaseModel):
    """Shared validation for composite identifier models.

    Identifier segments are joined with ':' so no segment may contain one.
    '$' is left alone: tenant-qualified users (``tenant$user``) live inside a
    single segment.
    """

    model_config = ConfigDict(frozen=True)

    @field_validator(
        "user_id",
        "access_key",
        "subuser",
        "bucket",
        "owner",
        "role_name",
        "policy_name",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def _segment(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not isinstance(value, str) or value.strip() == "":
            raise ValueError("identifier segment must be a non-empty string")
        if ":" in value:
            raise ValueError("identifier segment must not contain ':'")
        return value


class S3AccessKeyId(IdentifierValidatorMixin):
    user_id: str
    access_key: str


class SwiftAccessKeyId(IdentifierValidatorMixin):
    user_id: str
    subuser: str

    @property
    def full_subuser_id(self) -> str:
        return f"{self.user_id}:{self.subuser}"


class SubuserId(IdentifierValidatorMixin):
    user_id: str
    subuser: str

    @property
    def full_subuser_id(self) -> str:
        return f"{self.user_id}:{self.subuser}"


class BucketLinkId(IdentifierValidatorMixin):
    bucket: str
    owner: str | None = None

    @property
    def tenant(self) -> str | None:
        if self.owner is None or "$" not in self.owner:
            return None
        return self.owner.split("$", 1)[0]

    @property
    def user(self) -> str | None:
        if self.owner is None:
            return None
        return self.owner.split("$", 1)[-1]

    def with_owner(self, owner: str) -> BucketLinkId:
        """Return a copy with the owner filled in, e.g. after auto-detection."""
        return BucketLinkId(bucket=self.bucket, owner=owner)


class RolePolicyId(IdentifierValidatorMixin):
    role_name: str
    policy_name: str


class QuotaId(IdentifierValidatorMixin):
    user_id: str
    quota_type: Literal["user", "bucket"]


class OidcProviderId(IdentifierValidatorMixin):
    arn: str | None = None
    url: str | None = None

    @field_validator("arn")
    @classmethod
    def _valid_arn(cls, value: str | None) -> str | None:
        if value is not None and not OIDC_PROVIDER_ARN_RE.match(value):
            raise ValueError("arn must match 'arn:aws:iam:::oidc-provider/<url>'")
        return value

    @field_validator("url", mode="before")
    @classmethod
    def _bare_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if not isinstance(value, str):
            raise ValueError("url must be a string")
        value = strip_url_scheme(value)
        if value.strip() == "":
            raise ValueError("url must be non-empty")
        return value

    @model_validator(mode="after")
    def _exactly_one(self) -> OidcProviderId:
        if (self.arn is None) == (self.url is None):
            raise ValueError("exactly one of arn or url must be set")
        return self

    def to_arn(self) -> str:
        if self.arn is not None:
            return self.arn
        return f"arn:aws:iam:::oidc-provider/{self.url}"


Identifier = Union[
    S3AccessKeyId,
    SwiftAccessKeyId,
    SubuserId,
    BucketLinkId,
    RolePolicyId,
    QuotaId,
    OidcProviderId,
]
