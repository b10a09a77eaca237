"""Kubernetes-style label selectors for node groups."""

import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from .errors import ConfigError, SelectorError

OP_IN = "In"
OP_NOT_IN = "NotIn"
OP_EXISTS = "Exists"
OP_DOES_NOT_EXIST = "DoesNotExist"

SET_OPERATORS = (OP_IN, OP_NOT_IN)
EXISTENCE_OPERATORS = (OP_EXISTS, OP_DOES_NOT_EXIST)

LABEL_NAME_MAX_LENGTH = 63
LABEL_PREFIX_MAX_LENGTH = 253

_LABEL_NAME_RE = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_DNS_SUBDOMAIN_RE = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")


def validate_label_key(key: str) -> None:
    """
    Check a label key is a qualified name.

    Examples:
        "zone" -> ok
        "node.koordinator.sh/pool" -> ok
        "/pool", "a b" -> SelectorError
    """
    if not isinstance(key, str) or not key:
        raise SelectorError(f"invalid label key {key!r}: must be a non-empty string")

    prefix, sep, name = key.rpartition("/")
    if sep:
        if not prefix or len(prefix) > LABEL_PREFIX_MAX_LENGTH or not _DNS_SUBDOMAIN_RE.fullmatch(prefix):
            raise SelectorError(f"invalid label key {key!r}: prefix must be a DNS subdomain")
    if len(name) > LABEL_NAME_MAX_LENGTH or not _LABEL_NAME_RE.fullmatch(name):
        raise SelectorError(
            f"invalid label key {key!r}: name must be at most {LABEL_NAME_MAX_LENGTH} "
            "alphanumeric characters, '-', '_' or '.'"
        )


def validate_label_value(key: str, value: str) -> None:
    """Check a label value. Empty values are allowed."""
    if not isinstance(value, str):
        raise SelectorError(f"invalid label value for {key!r}: {value!r} is not a string")
    if value == "":
        return
    if len(value) > LABEL_NAME_MAX_LENGTH or not _LABEL_NAME_RE.fullmatch(value):
        raise SelectorError(f"invalid label value for {key!r}: {value!r}")


@dataclass
class LabelSelectorRequirement:
    """A single matchExpressions entry."""
    key: str
    operator: str
    values: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LabelSelectorRequirement":
        """Create a requirement from its JSON form."""
        if not isinstance(data, dict):
            raise ConfigError(f"matchExpressions entry must be an object, got {type(data).__name__}")
        values = data.get("values") or []
        if not isinstance(values, list):
            raise ConfigError(f"matchExpressions values must be a list, got {type(values).__name__}")
        return cls(
            key=data.get("key", ""),
            operator=data.get("operator", ""),
            values=list(values),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"key": self.key, "operator": self.operator}
        if self.values:
            result["values"] = list(self.values)
        return result


@dataclass
class LabelSelector:
    """Conjunctive selector over a node's labels (matchLabels and matchExpressions)."""
    match_labels: Dict[str, str] = field(default_factory=dict)
    match_expressions: List[LabelSelectorRequirement] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["LabelSelector"]:
        """Create a LabelSelector from its JSON form. None stays None."""
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ConfigError(f"nodeSelector must be an object, got {type(data).__name__}")

        match_labels = data.get("matchLabels") or {}
        if not isinstance(match_labels, dict):
            raise ConfigError(f"matchLabels must be an object, got {type(match_labels).__name__}")
        expressions = data.get("matchExpressions") or []
        if not isinstance(expressions, list):
            raise ConfigError(f"matchExpressions must be a list, got {type(expressions).__name__}")

        return cls(
            match_labels=dict(match_labels),
            match_expressions=[LabelSelectorRequirement.from_dict(e) for e in expressions],
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.match_labels:
            result["matchLabels"] = dict(self.match_labels)
        if self.match_expressions:
            result["matchExpressions"] = [e.to_dict() for e in self.match_expressions]
        return result

    def compile(self) -> "Selector":
        """
        Validate the selector and build a matcher.

        Returns:
            A Selector; an empty LabelSelector selects everything

        Raises:
            SelectorError: if a key, value or operator is invalid
        """
        requirements: List[Tuple[str, str, Tuple[str, ...]]] = []

        for key, value in self.match_labels.items():
            validate_label_key(key)
            validate_label_value(key, value)
            requirements.append((key, OP_IN, (value,)))

        for expression in self.match_expressions:
            validate_label_key(expression.key)
            if expression.operator in SET_OPERATORS:
                if not expression.values:
                    raise SelectorError(
                        f"{expression.operator} requirement on {expression.key!r} needs at least one value"
                    )
                for value in expression.values:
                    validate_label_value(expression.key, value)
            elif expression.operator in EXISTENCE_OPERATORS:
                if expression.values:
                    raise SelectorError(
                        f"{expression.operator} requirement on {expression.key!r} must not have values"
                    )
            else:
                raise SelectorError(f"{expression.operator!r} is not a valid label selector operator")
            requirements.append((expression.key, expression.operator, tuple(expression.values)))

        return Selector(tuple(requirements))


class Selector:
    """Compiled label selector."""

    def __init__(self, requirements: Tuple[Tuple[str, str, Tuple[str, ...]], ...]):
        self._requirements = requirements

    def matches(self, labels: Dict[str, str]) -> bool:
        """Check whether every requirement holds for the given labels."""
        for key, operator, values in self._requirements:
            present = key in labels
            if operator == OP_IN:
                if not present or labels[key] not in values:
                    return False
            elif operator == OP_NOT_IN:
                if present and labels[key] in values:
                    return False
            elif operator == OP_EXISTS:
                if not present:
                    return False
            elif operator == OP_DOES_NOT_EXIST:
                if present:
                    return False
        return True

    def __repr__(self) -> str:
        return f"Selector({self._requirements!r})"


def label_selector_as_selector(label_selector: Optional[LabelSelector]) -> Optional[Selector]:
    """
    Compile an optional LabelSelector.

    Returns:
        None for a missing selector (matches nothing), otherwise the compiled Selector
    """
    if label_selector is None:
        return None
    return label_selector.compile()

