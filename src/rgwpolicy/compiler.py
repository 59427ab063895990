from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Union

import structlog
from pydantic import ValidationError

from .exceptions import InvalidStatementError
from .models import POLICY_VERSION, Condition, PolicyDocument, Principal, Statement

logger = structlog.get_logger(__name__)

StatementInput = Union[Statement, Mapping[str, Any]]


def render_one_or_many(values: Sequence[str]) -> str | list[str]:
    """Render a list the way IAM documents conventionally do.

    Exactly one element renders as the bare string; anything else renders as
    a list in the original order.

    Examples:
        >>> render_one_or_many(["s3:GetObject"])
        's3:GetObject'
        >>> render_one_or_many(["s3:GetObject", "s3:PutObject"])
        ['s3:GetObject', 's3:PutObject']
    """
    if len(values) == 1:
        return values[0]
    return list(values)


def _render_principals(principals: Iterable[Principal]) -> str | dict[str, Any]:
    """Render principal blocks to a ``Principal``/``NotPrincipal`` value.

    Any wildcard block wins and renders as ``"*"``. Blocks sharing a type
    have their identifiers concatenated in order, without de-duplication.
    """
    principals = list(principals)
    if any(principal.is_wildcard for principal in principals):
        return "*"
    grouped: dict[str, list[str]] = {}
    for principal in principals:
        if not principal.identifiers:
            raise ValueError(f"principal of type '{principal.type}' must include identifiers")
        grouped.setdefault(principal.type, []).extend(principal.identifiers)
    return {ptype: render_one_or_many(identifiers) for ptype, identifiers in grouped.items()}


def _render_conditions(conditions: Iterable[Condition]) -> dict[str, dict[str, Any]]:
    grouped: dict[str, dict[str, list[str]]] = {}
    for condition in conditions:
        if not condition.values:
            raise ValueError(
                f"condition '{condition.test}' on '{condition.variable}' must include values"
            )
        variables = grouped.setdefault(condition.test, {})
        variables.setdefault(condition.variable, []).extend(condition.values)
    return {
        test: {variable: render_one_or_many(values) for variable, values in variables.items()}
        for test, variables in grouped.items()
    }


def _check_exclusive(statement: Statement) -> None:
    if statement.actions and statement.not_actions:
        raise ValueError("actions and not_actions are mutually exclusive")
    if statement.resources and statement.not_resources:
        raise ValueError("resources and not_resources are mutually exclusive")
    if statement.principals and statement.not_principals:
        raise ValueError("principals and not_principals are mutually exclusive")
    if not statement.actions and not statement.not_actions:
        raise ValueError("statement must include actions or not_actions")


def compile_statement(statement: Statement) -> dict[str, Any]:
    """Compile one statement to its JSON-ready mapping.

    Keys are emitted only when populated, in the order
    Sid, Effect, Principal/NotPrincipal, Action/NotAction,
    Resource/NotResource, Condition.

    Raises:
        ValueError: If the statement breaks a mutual-exclusion rule or a
            required field is empty
    """
    _check_exclusive(statement)

    rendered: dict[str, Any] = {}
    if statement.sid:
        rendered["Sid"] = statement.sid
    rendered["Effect"] = statement.effect

    if statement.principals:
        rendered["Principal"] = _render_principals(statement.principals)
    elif statement.not_principals:
        rendered["NotPrincipal"] = _render_principals(statement.not_principals)

    if statement.actions:
        rendered["Action"] = render_one_or_many(statement.actions)
    else:
        rendered["NotAction"] = render_one_or_many(statement.not_actions)

    if statement.resources:
        rendered["Resource"] = render_one_or_many(statement.resources)
    elif statement.not_resources:
        rendered["NotResource"] = render_one_or_many(statement.not_resources)

    if statement.conditions:
        rendered["Condition"] = _render_conditions(statement.conditions)

    return rendered


def _coerce_statement(statement: StatementInput, index: int) -> Statement:
    if isinstance(statement, Statement):
        return statement
    try:
        return Statement.model_validate(statement)
    except ValidationError as exc:
        logger.warning("statement_validation_failed", index=index, error=str(exc))
        raise InvalidStatementError(f"invalid statement data: {exc}", index=index) from exc


def compile_document(document: PolicyDocument) -> dict[str, Any]:
    """Compile a policy document model to its JSON-ready mapping."""
    rendered: dict[str, Any] = {"Version": document.version}
    if document.policy_id:
        rendered["Id"] = document.policy_id

    statements: list[dict[str, Any]] = []
    for index, statement in enumerate(document.statements):
        try:
            statements.append(compile_statement(statement))
        except ValueError as exc:
            logger.warning(
                "statement_compile_failed", index=index, sid=statement.sid, error=str(exc)
            )
            raise InvalidStatementError(str(exc), index=index) from exc
    rendered["Statement"] = statements
    return rendered


def compile_policy(
    statements: Sequence[StatementInput],
    version: str = POLICY_VERSION,
    policy_id: str | None = None,
) -> str:
    """Compile an ordered sequence of statements into IAM policy JSON text.

    Statements may be Statement models or plain mappings with the same
    fields, as produced by a configuration block. Statement order is kept
    exactly as given.

    Args:
        statements: Statements in authoring order
        version: Policy language version; empty selects the default
        policy_id: Optional document identifier, rendered as ``Id``

    Returns:
        Compact JSON text with ``Version`` first

    Raises:
        InvalidStatementError: If a statement is malformed, breaks a
            mutual-exclusion rule, or leaves a required field empty
    """
    coerced = [_coerce_statement(statement, index) for index, statement in enumerate(statements)]
    try:
        document = PolicyDocument(
            version=version or POLICY_VERSION, policy_id=policy_id, statements=coerced
        )
    except ValidationError as exc:
        raise InvalidStatementError(f"invalid policy document: {exc}") from exc

    text = json.dumps(compile_document(document), separators=(",", ":"), ensure_ascii=False)
    logger.debug("policy_compiled", statements=len(coerced), version=document.version)
    return text
