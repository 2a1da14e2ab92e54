"""Statistics on how well a scrubbing policy handled a stream of data."""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .policy import Disposition, Policy
from .prng import fnv_hash


class Percentage(float):
    """A fraction that prints as a percentage with one decimal place."""

    def __str__(self) -> str:
        if math.isnan(self):
            return "NaN%"
        return f"{float(self) * 100:.1f}%"


@dataclass
class RuleReport:
    """How one rule was applied to an input stream.

    freq is the share of distinct inputs handled by the rule; safe is the share
    of its outputs that did not coincide with any of its inputs.
    """

    defn: str = ""
    fields: Optional[list[str]] = None
    freq: Percentage = Percentage(0.0)
    safe: Percentage = Percentage(0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "defn": self.defn,
            "fields": list(self.fields or []),
            "freq": str(self.freq),
            "safe": str(self.safe),
        }


@dataclass
class SummaryReport:
    load: Percentage = Percentage(0.0)
    safe: Percentage = Percentage(0.0)


@dataclass
class Report:
    """Statistics for every rule of a policy, and a summary."""

    field_name: list[RuleReport] = field(default_factory=list)
    heuristic: list[RuleReport] = field(default_factory=list)
    summary: SummaryReport = field(default_factory=SummaryReport)

    def to_dict(self) -> dict[str, Any]:
        """Return plain data suitable for printing as YAML."""
        return {
            "fieldname": [r.to_dict() for r in self.field_name],
            "heuristic": [r.to_dict() for r in self.heuristic],
            "summary": {"load": str(self.summary.load), "safe": str(self.summary.safe)},
        }


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else math.nan


def _rule_report(
    defn: str,
    in_out: Optional[Mapping[int, int]],
    fields: Optional[set[str]],
    total: int,
) -> RuleReport:
    report = RuleReport(defn=defn, fields=sorted(fields) if fields else None)
    if not in_out:
        return report
    outputs = set(in_out.values())
    overlap = sum(1 for h in in_out if h in outputs)
    report.freq = Percentage(_ratio(len(in_out), total))
    report.safe = Percentage(1.0 - overlap / len(in_out))
    return report


class Verifier:
    """Records what a scrubber did with each value; safe to share between threads."""

    def __init__(self, policy: Policy) -> None:
        self.policy = policy
        self._lock = threading.Lock()
        self._field_name_in_out: dict[int, dict[int, int]] = {}
        self._field_name_fields: dict[int, set[str]] = {}
        self._heuristic_in_out: dict[int, dict[int, int]] = {}
        self._heuristic_fields: dict[int, set[str]] = {}
        self._pass_in: set[int] = set()
        self._pass_fields: set[str] = set()

    def _record(
        self,
        in_out: dict[int, dict[int, int]],
        fields: dict[int, set[str]],
        text_in: str,
        text_out: str,
        names: Optional[Iterable[str]],
        rule_index: int,
    ) -> None:
        with self._lock:
            in_out.setdefault(rule_index, {})[fnv_hash(text_in)] = fnv_hash(text_out)
            fields.setdefault(rule_index, set()).update(names or ())

    def record_field_name(
        self,
        text_in: str,
        text_out: str,
        names: Optional[Iterable[str]],
        rule_index: int,
        disposition: Disposition,
    ) -> None:
        self._record(self._field_name_in_out, self._field_name_fields, text_in, text_out, names, rule_index)

    def record_heuristic(
        self,
        text_in: str,
        text_out: str,
        names: Optional[Iterable[str]],
        rule_index: int,
        disposition: Disposition,
    ) -> None:
        self._record(self._heuristic_in_out, self._heuristic_fields, text_in, text_out, names, rule_index)

    def record_pass(self, text_in: str, names: Optional[Iterable[str]]) -> None:
        """Record a value left unscrubbed; the empty string is not counted."""
        if text_in == "":
            return
        with self._lock:
            self._pass_in.add(fnv_hash(text_in))
            self._pass_fields.update(names or ())

    def report(self) -> Report:
        """Summarise everything recorded so far."""
        with self._lock:
            scrubbed = sum(len(m) for m in self._field_name_in_out.values())
            scrubbed += sum(len(m) for m in self._heuristic_in_out.values())
            total = scrubbed + len(self._pass_in)

            field_reports = [
                _rule_report(
                    str(rule),
                    self._field_name_in_out.get(i),
                    self._field_name_fields.get(i),
                    total,
                )
                for i, rule in enumerate(self.policy.field_name)
            ]
            heuristic_reports = [
                _rule_report(
                    str(rule),
                    self._heuristic_in_out.get(i),
                    self._heuristic_fields.get(i),
                    total,
                )
                for i, rule in enumerate(self.policy.heuristic)
            ]

        safe_sum = sum(float(r.safe) for r in field_reports + heuristic_reports)
        summary = SummaryReport(
            load=Percentage(_ratio(scrubbed, total)),
            safe=Percentage(_ratio(safe_sum, len(field_reports) + len(heuristic_reports))),
        )
        return Report(field_name=field_reports, heuristic=heuristic_reports, summary=summary)