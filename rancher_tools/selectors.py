"""Rendering of label selectors into their query-string form."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

_NAME = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_DNS_SUBDOMAIN = re.compile(
    r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*"
)


class SelectorError(ValueError):
    """Raised when a label selector is not valid."""


def _validate_key(key: Any) -> None:
    if not isinstance(key, str):
        raise SelectorError(f"key: Invalid value: {key!r}: must be a string")
    parts = key.split("/")
    if len(parts) == 1:
        name = parts[0]
    elif len(parts) == 2:
        prefix, name = parts
        if not prefix:
            raise SelectorError(f"key: Invalid value: {key!r}: prefix part must be non-empty")
        if len(prefix) > 253 or not _DNS_SUBDOMAIN.fullmatch(prefix):
            raise SelectorError(
                f"key: Invalid value: {key!r}: prefix part must be a lowercase DNS subdomain"
            )
    else:
        raise SelectorError(
            f"key: Invalid value: {key!r}: a qualified name must consist of alphanumeric "
            "characters, '-', '_' or '.', with an optional DNS subdomain prefix and '/'"
        )
    if not name:
        raise SelectorError(f"key: Invalid value: {key!r}: name part must be non-empty")
    if len(name) > 63 or not _NAME.fullmatch(name):
        raise SelectorError(
            f"key: Invalid value: {key!r}: name part must consist of alphanumeric "
            "characters, '-', '_' or '.', and must start and end with an alphanumeric character"
        )


def _validate_value(value: Any) -> None:
    if not isinstance(value, str):
        raise SelectorError(f"values: Invalid value: {value!r}: must be a string")
    if value and (len(value) > 63 or not _NAME.fullmatch(value)):
        raise SelectorError(
            f"values: Invalid value: {value!r}: a valid label must be an empty string or "
            "consist of alphanumeric characters, '-', '_' or '.', and must start and end "
            "with an alphanumeric character"
        )


@dataclass(frozen=True)
class _Requirement:
    key: str
    operator: str
    values: Tuple[str, ...]

    def render(self) -> str:
        if self.operator == "=":
            return f"{self.key}={self.values[0]}"
        if self.operator == "exists":
            return self.key
        if self.operator == "!":
            return f"!{self.key}"
        return f"{self.key} {self.operator} ({','.join(self.values)})"


_OPERATORS = {"In": "in", "NotIn": "notin", "Exists": "exists", "DoesNotExist": "!"}


def _requirement(key: Any, operator: str, values: Any) -> _Requirement:
    _validate_key(key)
    values = list(values or [])
    if operator in ("in", "notin"):
        if not values:
            raise SelectorError(
                "values: Invalid value: []: for 'in', 'notin' operators, values set can't be empty"
            )
    elif operator in ("exists", "!"):
        if values:
            raise SelectorError(
                "values: Invalid value: values set must be empty for exists and does not exist"
            )
    for value in values:
        _validate_value(value)
    return _Requirement(key, operator, tuple(sorted(values)))


def label_selector_to_string(selector: Optional[Mapping[str, Any]]) -> str:
    """Render a ``matchLabels``/``matchExpressions`` selector as a query string.

    A missing selector and an empty one both render as an empty string.
    """
    if selector is None:
        return ""
    match_labels = selector.get("matchLabels") or {}
    match_expressions = selector.get("matchExpressions") or []
    if not match_labels and not match_expressions:
        return ""

    requirements = [_requirement(key, "=", [value]) for key, value in match_labels.items()]
    for expression in match_expressions:
        operator = expression.get("operator")
        if operator not in _OPERATORS:
            raise SelectorError(f'"{operator}" is not a valid label selector operator')
        requirements.append(
            _requirement(expression.get("key"), _OPERATORS[operator], expression.get("values"))
        )

    requirements.sort(key=lambda requirement: requirement.key)
    return ",".join(requirement.render() for requirement in requirements)


def match_labels_selector(labels: Mapping[str, str]) -> str:
    """Render a selector that matches exactly the given labels."""
    return label_selector_to_string({"matchLabels": dict(labels)})