import pytest

from rgwpolicy.models import (
    BucketLinkId,
    Condition,
    OidcProviderId,
    PolicyDocument,
    Principal,
    QuotaId,
    RolePolicyId,
    S3AccessKeyId,
    Statement,
)


def test_statement_defaults():
    statement = Statement()
    assert statement.effect == "Allow"
    assert statement.sid is None
    assert statement.actions == []
    assert statement.conditions == []


def test_statement_rejects_unknown_effect():
    with pytest.raises(ValueError):
        Statement(effect="Permit", actions=["s3:GetObject"])


def test_statement_rejects_unknown_fields():
    with pytest.raises(ValueError):
        Statement(action=["s3:GetObject"])


def test_principal_type_validation():
    assert Principal(type="*").is_wildcard is True
    assert Principal(type="CanonicalUser", identifiers=["abc"]).is_wildcard is False
    with pytest.raises(ValueError):
        Principal(type="User", identifiers=["alice"])


def test_condition_requires_test_and_variable():
    with pytest.raises(ValueError):
        Condition(test=" ", variable="aws:username", values=["alice"])
    with pytest.raises(ValueError):
        Condition(test="StringEquals", variable="", values=["alice"])


def test_policy_document_version():
    assert PolicyDocument().version == "2012-10-17"
    assert PolicyDocument(version="2008-10-17").version == "2008-10-17"
    with pytest.raises(ValueError):
        PolicyDocument(version="2020-01-01")


def test_identifier_rejects_colon_in_segment():
    with pytest.raises(ValueError):
        S3AccessKeyId(user_id="alice:bob", access_key="KEY")


def test_identifier_rejects_empty_segment():
    with pytest.raises(ValueError):
        RolePolicyId(role_name="Role", policy_name=" ")


def test_identifier_allows_tenant_delimiter():
    identifier = BucketLinkId(bucket="mybucket", owner="tenant1$user1")
    assert identifier.owner == "tenant1$user1"


def test_quota_type_validation():
    with pytest.raises(ValueError):
        QuotaId(user_id="alice", quota_type="global")


def test_oidc_provider_requires_exactly_one_field():
    with pytest.raises(ValueError):
        OidcProviderId()
    with pytest.raises(ValueError):
        OidcProviderId(
            arn="arn:aws:iam:::oidc-provider/accounts.google.com", url="accounts.google.com"
        )


def test_oidc_provider_url_drops_scheme():
    assert OidcProviderId(url="http://idp.example.com").url == "idp.example.com"
