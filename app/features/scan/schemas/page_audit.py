"""
Page Audit Schemas

Fixed shape of what a page auditor hands back for one rendered page:
rule violations, each with its severity and the DOM nodes it matched.
"""
import enum
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class Severity(str, enum.Enum):
    """axe-core impact levels, plus a bucket for anything unrecognised"""
    critical = "critical"
    serious = "serious"
    moderate = "moderate"
    minor = "minor"
    unknown = "unknown"

    @classmethod
    def from_impact(cls, impact: Optional[str]) -> "Severity":
        # axe reports no impact for some best-practice rules; those count as minor
        if impact is None or impact == "":
            return cls.minor
        if isinstance(impact, cls):
            return impact
        try:
            return cls(str(impact).strip().lower())
        except ValueError:
            return cls.unknown

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK: Dict[Severity, int] = {
    Severity.critical: 1,
    Severity.serious: 2,
    Severity.moderate: 3,
    Severity.minor: 4,
    Severity.unknown: 5,
}

NAMED_SEVERITIES = (Severity.critical, Severity.serious, Severity.moderate, Severity.minor)


class AffectedNode(BaseModel):
    """A DOM node matched by a failing rule."""
    html: str = ""
    target: List[str] = Field(default_factory=list)
    failure_summary: Optional[str] = None

    @field_validator("target", mode="before")
    @classmethod
    def _flatten_target(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, (str, int, float)):
            return [str(value)]
        parts = []
        for part in value:
            # Shadow DOM targets come back as nested selector lists
            if isinstance(part, (list, tuple)):
                parts.append(" >>> ".join(str(p) for p in part))
            else:
                parts.append(str(part))
        return parts

    @property
    def selector(self) -> str:
        return ", ".join(self.target)


class RuleViolation(BaseModel):
    """One failing rule on a page, with every node it matched."""
    id: str
    impact: Severity = Severity.minor
    description: str = ""
    help: str = ""
    help_url: Optional[str] = None
    nodes: List[AffectedNode] = Field(default_factory=list)

    @field_validator("impact", mode="before")
    @classmethod
    def _coerce_impact(cls, value: Any) -> Severity:
        return Severity.from_impact(value)

    @classmethod
    def from_axe(cls, raw: Dict[str, Any]) -> "RuleViolation":
        """Build from a raw axe-core `violations[]` entry."""
        return cls(
            id=raw.get("id") or "unknown-rule",
            impact=raw.get("impact"),
            description=raw.get("description") or "",
            help=raw.get("help") or "",
            help_url=raw.get("helpUrl"),
            nodes=[
                AffectedNode(
                    html=node.get("html") or "",
                    target=node.get("target"),
                    failure_summary=node.get("failureSummary"),
                )
                for node in raw.get("nodes") or []
            ],
        )


class PageAuditResult(BaseModel):
    url: str
    violations: List[RuleViolation] = Field(default_factory=list)

    @property
    def severity_counts(self) -> "SeverityCounts":
        counts = SeverityCounts()
        for violation in self.violations:
            counts.tally(violation.impact, len(violation.nodes))
        return counts


Number = Union[int, float]


@dataclass
class SeverityCounts:
    """Occurrence tally per severity. Unknown is kept apart from the named four."""
    critical: Number = 0
    serious: Number = 0
    moderate: Number = 0
    minor: Number = 0
    unknown: Number = 0

    def tally(self, severity: Severity, amount: int = 1) -> None:
        setattr(self, severity.value, getattr(self, severity.value) + amount)

    @property
    def total(self) -> Number:
        return self.critical + self.serious + self.moderate + self.minor + self.unknown

    def merge(self, other: "SeverityCounts") -> "SeverityCounts":
        return SeverityCounts(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    @classmethod
    def mean(cls, counts: Iterable["SeverityCounts"]) -> "SeverityCounts":
        """Element-wise average; an empty input averages to all zeros."""
        items = list(counts)
        if not items:
            return cls()
        return cls(
            **{
                f.name: sum(getattr(item, f.name) for item in items) / len(items)
                for f in fields(cls)
            }
        )

    def to_summary(self) -> Dict[str, Number]:
        return {
            "totalViolations": self.total,
            "critical": self.critical,
            "serious": self.serious,
            "moderate": self.moderate,
            "minor": self.minor,
        }
