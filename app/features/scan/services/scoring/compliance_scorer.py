import math
from typing import Iterable, Union

from app.features.scan.schemas.page_audit import SeverityCounts


class ComplianceScorer:
    """
    Turns severity counts into a 0-100 compliance score.

    Every occurrence costs a fixed number of points by severity and the
    result is clamped at 0. Unknown severities carry no penalty. The
    score is never stored; callers recompute it from persisted counts.
    """

    # Points deducted per occurrence, strictly decreasing with severity
    CRITICAL_WEIGHT: int = 10
    SERIOUS_WEIGHT: int = 5
    MODERATE_WEIGHT: int = 2
    MINOR_WEIGHT: int = 1

    MAX_SCORE: int = 100
    MIN_SCORE: int = 0

    @classmethod
    def penalty(cls, counts: SeverityCounts) -> Union[int, float]:
        return (
            counts.critical * cls.CRITICAL_WEIGHT
            + counts.serious * cls.SERIOUS_WEIGHT
            + counts.moderate * cls.MODERATE_WEIGHT
            + counts.minor * cls.MINOR_WEIGHT
        )

    @classmethod
    def score(cls, counts: SeverityCounts) -> int:
        """
        Score one set of counts.

        All-zero counts score exactly 100. Fractional inputs (averages)
        are rounded half-up so the same counts always give the same score.
        """
        if counts.critical + counts.serious + counts.moderate + counts.minor == 0:
            return cls.MAX_SCORE

        raw = max(cls.MIN_SCORE, cls.MAX_SCORE - cls.penalty(counts))
        return min(cls.MAX_SCORE, int(math.floor(raw + 0.5)))

    @classmethod
    def average_score(cls, counts: Iterable[SeverityCounts]) -> int:
        """
        Score a set of scans by averaging their counts first.

        This is deliberately not the mean of per-scan scores.
        """
        return cls.score(SeverityCounts.mean(counts))


def calculate_compliance_score(
    critical: Union[int, float] = 0,
    serious: Union[int, float] = 0,
    moderate: Union[int, float] = 0,
    minor: Union[int, float] = 0,
) -> int:
    """Convenience wrapper for raw column values (e.g. rows from `scans`)."""
    return ComplianceScorer.score(
        SeverityCounts(
            critical=critical or 0,
            serious=serious or 0,
            moderate=moderate or 0,
            minor=minor or 0,
        )
    )
