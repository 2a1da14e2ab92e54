"""Scrubbing policies: which values to scrub and what to do with them."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .models import Generator

_FIELD_NAME_ACTIONS = ("erase", "mask", "pass", "replace")
_HEURISTIC_ACTIONS = ("erase", "mask", "replace")


class Disposition(str):
    """How to scrub a value: "erase", "mask", "pass", "replace(x)" or "generate(model)"."""

    def action(self) -> str:
        paren = self.find("(")
        return str(self[:paren]) if paren >= 0 else str(self)

    def parameter(self) -> str:
        paren = self.find("(")
        return str(self[paren + 1 : len(self) - 1]) if paren >= 0 else ""


def _as_mapping(data: Union[Mapping[str, Any], str, bytes]) -> Mapping[str, Any]:
    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _lookup(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    if key in data:
        return data[key]
    folded = key.casefold()
    for name, value in data.items():
        if name.casefold() == folded:
            return value
    return default


@dataclass
class FieldNameRule:
    """Scrub every value whose field name matches a pattern."""

    pattern: re.Pattern
    out: Disposition

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            self.pattern = re.compile(self.pattern)
        self.out = Disposition(self.out)

    def __str__(self) -> str:
        return f"{self.pattern.pattern} ―➤ {self.out}"

    def to_json(self) -> dict[str, str]:
        return {"In": self.pattern.pattern, "Out": str(self.out)}

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes]) -> FieldNameRule:
        obj = _as_mapping(data)
        return cls(re.compile(_lookup(obj, "In", "") or ""), Disposition(_lookup(obj, "Out", "") or ""))


@dataclass
class HeuristicRule:
    """Scrub every value that a model recognises with enough confidence.

    The rule applies when the model's confidence is at least 1 - p.
    """

    model: str
    p: float = 0.0
    out: Disposition = Disposition("")

    def __post_init__(self) -> None:
        self.out = Disposition(self.out)

    def __str__(self) -> str:
        return f"{self.model} ―(P≤{self.p:1.2f})―➤ {self.out}"

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes]) -> HeuristicRule:
        obj = _as_mapping(data)
        return cls(
            model=_lookup(obj, "In", "") or "",
            p=float(_lookup(obj, "P", 0.0) or 0.0),
            out=Disposition(_lookup(obj, "Out", "") or ""),
        )


@dataclass
class Policy:
    """Field-name rules and heuristic rules, applied in that order."""

    field_name: list[FieldNameRule] = field(default_factory=list)
    heuristic: list[HeuristicRule] = field(default_factory=list)

    def match_field_name(self, names: Sequence[str]) -> Optional[tuple[Disposition, int]]:
        """Return the disposition and index of the first rule matching any name, or None."""
        for index, rule in enumerate(self.field_name):
            if any(rule.pattern.search(name) for name in names):
                return (rule.out, index) if rule.out else None
        return None

    def validate(self, models: Optional[Mapping[str, Any]]) -> list[str]:
        """Return a description of every inconsistency; an empty list means valid."""
        models = models or {}
        problems: list[str] = []

        for i, rule in enumerate(self.field_name):
            action = rule.out.action()
            if action in _FIELD_NAME_ACTIONS:
                continue
            if action == "generate":
                name = rule.out.parameter()
                model = models.get(name)
                if model is None:
                    problems.append(f"unrecognized model {name!r} for fieldname[{i}]")
                elif not isinstance(model, Generator):
                    problems.append(f"model {name!r} for fieldname[{i}] is not a generator")
            else:
                problems.append(f"unknown policy action {action!r} for fieldname[{i}]")

        for i, rule in enumerate(self.heuristic):
            if models.get(rule.model) is None:
                problems.append(f"unrecognized model {rule.model!r} for heuristic[{i}]")
            action = rule.out.action()
            if action in _HEURISTIC_ACTIONS:
                continue
            if action == "generate":
                name = rule.out.parameter()
                model = models.get(name)
                if model is None:
                    problems.append(f"unrecognized output model {name!r} for heuristic[{i}]")
                elif not isinstance(model, Generator):
                    problems.append(f"model {name!r} for heuristic[{i}] is not a generator")
            else:
                problems.append(f"unknown policy action {action!r} for heuristic[{i}]")

        return problems

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes]) -> Policy:
        obj = _as_mapping(data)
        return cls(
            field_name=[FieldNameRule.from_json(r) for r in _lookup(obj, "fieldname") or []],
            heuristic=[HeuristicRule.from_json(r) for r in _lookup(obj, "heuristic") or []],
        )


def default_policy() -> Policy:
    """Return a policy with broadly useful defaults."""
    return Policy(
        field_name=[
            FieldNameRule(re.compile("email"), Disposition("mask")),
            FieldNameRule(re.compile("phone"), Disposition("mask")),
            FieldNameRule(re.compile("(post(al)?_?code)|zip"), Disposition("mask")),
        ]
    )