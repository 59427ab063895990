from .compiler import compile_document, compile_policy, compile_statement, render_one_or_many
from .exceptions import (
    IdentifierError,
    InvalidImportFormatError,
    InvalidStatementError,
    MalformedPolicyError,
    PolicyError,
    RgwPolicyError,
)
from .identifiers import (
    expected_format,
    find_oidc_provider_arn,
    oidc_provider_arn,
    parse_access_key_identifier,
    parse_identifier,
    render_identifier,
    url_from_oidc_provider_arn,
)
from .models import (
    POLICY_VERSION,
    BucketLinkId,
    Condition,
    OidcProviderId,
    PolicyDocument,
    Principal,
    QuotaId,
    ResourceKind,
    RolePolicyId,
    S3AccessKeyId,
    Statement,
    SubuserId,
    SwiftAccessKeyId,
)
from .normalizer import (
    DecodedPolicy,
    NormalizedPolicy,
    decode_remote_policy,
    normalize_policy,
    normalize_remote_policy,
    policies_equivalent,
)

__all__ = [
    # Models
    "BucketLinkId",
    "Condition",
    "DecodedPolicy",
    "NormalizedPolicy",
    "OidcProviderId",
    "POLICY_VERSION",
    "PolicyDocument",
    "Principal",
    "QuotaId",
    "ResourceKind",
    "RolePolicyId",
    "S3AccessKeyId",
    "Statement",
    "SubuserId",
    "SwiftAccessKeyId",
    # Functions
    "compile_document",
    "compile_policy",
    "compile_statement",
    "decode_remote_policy",
    "expected_format",
    "find_oidc_provider_arn",
    "normalize_policy",
    "normalize_remote_policy",
    "oidc_provider_arn",
    "parse_access_key_identifier",
    "parse_identifier",
    "policies_equivalent",
    "render_identifier",
    "render_one_or_many",
    "url_from_oidc_provider_arn",
    # Exceptions
    "IdentifierError",
    "InvalidImportFormatError",
    "InvalidStatementError",
    "MalformedPolicyError",
    "PolicyError",
    "RgwPolicyError",
]

__version__ = "0.1.0"
