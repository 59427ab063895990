from urllib.parse import quote_plus

import pytest

from rgwpolicy.exceptions import MalformedPolicyError
from rgwpolicy.normalizer import (
    decode_remote_policy,
    normalize_policy,
    normalize_remote_policy,
    policies_equivalent,
)

TRUST_POLICY = """{
  "Version": "2012-10-17",
  "Statement": [
    {
      "Effect": "Allow",
      "Principal": {"Federated": ["arn:aws:iam:::oidc-provider/idp.example.com"]},
      "Action": ["sts:AssumeRoleWithWebIdentity"],
      "Condition": {"StringEquals": {"idp.example.com:app_id": "account"}}
    }
  ]
}"""


def test_normalize_sorts_keys():
    assert normalize_policy('{"B":1,"A":2}') == '{"A":2,"B":1}'


def test_normalize_keeps_array_order():
    assert normalize_policy('{"Statement":[{"Action":["y","x"]}]}') == (
        '{"Statement":[{"Action":["y","x"]}]}'
    )


def test_normalize_sorts_nested_keys_and_strips_whitespace():
    normalized = normalize_policy(TRUST_POLICY)
    assert normalized == (
        '{"Statement":[{"Action":["sts:AssumeRoleWithWebIdentity"],'
        '"Condition":{"StringEquals":{"idp.example.com:app_id":"account"}},'
        '"Effect":"Allow",'
        '"Principal":{"Federated":["arn:aws:iam:::oidc-provider/idp.example.com"]}}],'
        '"Version":"2012-10-17"}'
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('{"n":1}', '{"n":1}'),
        ('{"n":1.0}', '{"n":1.0}'),
        ('{"n":1e3}', '{"n":1e3}'),
        ('{"n":-0.50}', '{"n":-0.50}'),
        ('{"n":12345678901234567890123}', '{"n":12345678901234567890123}'),
    ],
)
def test_normalize_preserves_number_lexemes(raw, expected):
    assert normalize_policy(raw) == expected


def test_normalize_scalars_and_literals():
    assert normalize_policy('[true, false, null, "x"]') == '[true,false,null,"x"]'
    assert normalize_policy('"only"') == '"only"'


def test_normalize_keeps_non_ascii_and_escapes():
    assert normalize_policy('{"k":"caf\\u00e9 \\"q\\"\\n"}') == '{"k":"café \\"q\\"\\n"}'


def test_normalize_duplicate_keys_last_wins():
    assert normalize_policy('{"a":1,"a":2}') == '{"a":2}'


@pytest.mark.parametrize("raw", ["", "   ", "{", '{"a":}', "{'a': 1}", '{"a": NaN}', "Infinity"])
def test_normalize_rejects_malformed(raw):
    with pytest.raises(MalformedPolicyError):
        normalize_policy(raw)


def test_malformed_error_names_configuration_source():
    with pytest.raises(MalformedPolicyError, match="configuration") as excinfo:
        normalize_policy("{not json")
    assert excinfo.value.source == "configuration"


def test_malformed_error_names_remote_source():
    with pytest.raises(MalformedPolicyError, match="RadosGW API") as excinfo:
        normalize_policy("{not json", source="remote")
    assert excinfo.value.source == "remote"


def test_decode_remote_policy_unescapes():
    encoded = quote_plus('{"Version":"2012-10-17","Statement":[]}')
    decoded = decode_remote_policy(encoded)
    assert decoded.text == '{"Version":"2012-10-17","Statement":[]}'
    assert decoded.best_effort is False


def test_decode_remote_policy_plain_text_passthrough():
    decoded = decode_remote_policy('{"Statement":[]}')
    assert decoded.text == '{"Statement":[]}'
    assert decoded.best_effort is False


def test_decode_remote_policy_invalid_escape_falls_back():
    raw = '{"Condition":{"StringLike":{"s3:prefix":"100%"}}}'
    decoded = decode_remote_policy(raw)
    assert decoded.text == raw
    assert decoded.best_effort is True


def test_decode_remote_policy_invalid_utf8_falls_back():
    raw = '{"k":"%ff"}'
    decoded = decode_remote_policy(raw)
    assert decoded.text == raw
    assert decoded.best_effort is True


def test_normalize_remote_policy():
    result = normalize_remote_policy(quote_plus(TRUST_POLICY))
    assert result.policy == normalize_policy(TRUST_POLICY)
    assert result.best_effort is False


def test_normalize_remote_policy_best_effort_still_normalizes():
    result = normalize_remote_policy('{"b":"50%","a":1}')
    assert result.policy == '{"a":1,"b":"50%"}'
    assert result.best_effort is True


def test_normalize_remote_policy_malformed():
    with pytest.raises(MalformedPolicyError) as excinfo:
        normalize_remote_policy(quote_plus("{broken"))
    assert excinfo.value.source == "remote"


def test_policies_equivalent():
    assert policies_equivalent('{"a":[1,2],"b":{"y":1,"x":2}}', '{"b":{"x":2,"y":1},"a":[1,2]}')
    assert not policies_equivalent('{"a":[1,2]}', '{"a":[2,1]}')
    assert not policies_equivalent('{"a":1}', '{"a":1.0}')
