"""
Weighted Scoring Engine for cross-referencing schedule items.

Each criterion adds credit only when both the schedule item and the
candidate carry the attribute. Missing attributes never disqualify a
candidate; they just earn nothing.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import math
import re

from .models import Product, ScheduleItem, ScoreBreakdown, ScoredCandidate


@dataclass
class ScoringWeights:
    """Rubric constants. The defaults add up to 100."""
    mounting_type: float = 25.0
    cct: float = 20.0

    # Lumens: full credit at an exact match, falling linearly to the
    # floor at the tolerance edges
    lumens: float = 30.0
    lumens_floor: float = 20.0
    lumens_tolerance: float = 0.10

    # Awarded to any candidate at or above the threshold
    cri: float = 15.0
    cri_threshold: float = 80.0

    voltage: float = 5.0

    wattage: float = 5.0
    wattage_tolerance: float = 0.30

    @property
    def max_score(self) -> float:
        return (self.mounting_type + self.cct + self.lumens +
                self.cri + self.voltage + self.wattage)


_NON_ALNUM = re.compile(r'[^a-z0-9]')


def normalize(value: str) -> str:
    """Lower-case and keep only letters and digits ("120 V" == "120v")."""
    return _NON_ALNUM.sub('', value.lower())


def round_score(value: float) -> int:
    """Round half up, so 62.5 scores 63."""
    return int(math.floor(value + 0.5))


def format_number(value: float) -> str:
    """Display 2100.0 as "2100" and 3.5 as "3.5"."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


class ScoringEngine:
    """
    Scores catalog products against a schedule item and ranks them.
    Scoring is a pure function of (item, product).
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def score_match(self, item: ScheduleItem, product: Product) -> ScoreBreakdown:
        """Score how well a product matches a schedule item."""
        breakdown = ScoreBreakdown()

        breakdown.mounting_score, breakdown.mounting_reason = self._score_mounting(item, product)
        breakdown.cct_score, breakdown.cct_reason = self._score_cct(item, product)
        breakdown.lumens_score, breakdown.lumens_reason = self._score_lumens(item, product)
        breakdown.cri_score, breakdown.cri_reason = self._score_cri(product)
        breakdown.voltage_score, breakdown.voltage_reason = self._score_voltage(item, product)
        breakdown.wattage_score, breakdown.wattage_reason = self._score_wattage(item, product)

        return breakdown

    def score_candidates(self, item: ScheduleItem,
                         candidates: Sequence[Product]) -> List[ScoredCandidate]:
        """
        Rank candidates for a schedule item, best first.

        Candidates scoring 0 are left out. Ties keep their input order.
        The result is not truncated; callers decide how many to keep.
        """
        scored = []

        for product in candidates:
            breakdown = self.score_match(item, product)
            score = round_score(breakdown.total)
            if score > 0:
                scored.append(ScoredCandidate(
                    product=product,
                    score=score,
                    rationale=breakdown.rationale,
                    breakdown=breakdown,
                ))

        scored.sort(key=lambda c: c.score, reverse=True)

        return scored

    def _score_mounting(self, item: ScheduleItem, product: Product) -> Tuple[float, str]:
        if not (item.mounting_type and product.mounting_type):
            return 0.0, ""

        if normalize(item.mounting_type) == normalize(product.mounting_type):
            return self.weights.mounting_type, "Mounting type matches"

        return 0.0, ""

    def _score_cct(self, item: ScheduleItem, product: Product) -> Tuple[float, str]:
        """Exact CCT only; 3000K is not a substitute for 3500K."""
        if not (item.cct and product.cct):
            return 0.0, ""

        if item.cct == product.cct:
            return self.weights.cct, f"CCT matches ({format_number(product.cct)}K)"

        return 0.0, ""

    def _score_lumens(self, item: ScheduleItem, product: Product) -> Tuple[float, str]:
        """
        Score lumen output within tolerance of the specified value.
        Ratio 1.0 earns full credit, the tolerance edges earn the floor.
        """
        if not (item.lumens and product.lumens):
            return 0.0, ""

        tolerance = self.weights.lumens_tolerance
        ratio = product.lumens / item.lumens

        if not (1 - tolerance <= ratio <= 1 + tolerance):
            return 0.0, ""

        proximity = 1 - abs(1 - ratio) / tolerance
        span = self.weights.lumens - self.weights.lumens_floor
        score = self.weights.lumens_floor + proximity * span

        reason = (f"Lumens: {format_number(product.lumens)} vs "
                  f"{format_number(item.lumens)} specified "
                  f"({round_score(ratio * 100)}%)")
        return score, reason

    def _score_cri(self, product: Product) -> Tuple[float, str]:
        """Any candidate at or above the threshold earns CRI credit."""
        if product.cri and product.cri >= self.weights.cri_threshold:
            return self.weights.cri, f"CRI {format_number(product.cri)}"
        return 0.0, ""

    def _score_voltage(self, item: ScheduleItem, product: Product) -> Tuple[float, str]:
        if not (item.voltage and product.voltage):
            return 0.0, ""

        if normalize(item.voltage) == normalize(product.voltage):
            return self.weights.voltage, "Voltage matches"

        return 0.0, ""

    def _score_wattage(self, item: ScheduleItem, product: Product) -> Tuple[float, str]:
        """Binary: inside the tolerance band or nothing."""
        if not (item.wattage and product.wattage):
            return 0.0, ""

        tolerance = self.weights.wattage_tolerance
        ratio = product.wattage / item.wattage

        if 1 - tolerance <= ratio <= 1 + tolerance:
            return self.weights.wattage, f"Wattage: {format_number(product.wattage)}W"

        return 0.0, ""


def score_candidates(item: ScheduleItem,
                     candidates: Sequence[Product]) -> List[ScoredCandidate]:
    """Rank candidates with the default rubric."""
    return ScoringEngine().score_candidates(item, candidates)
