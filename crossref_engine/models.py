"""
Core data models for the Luminaire Cross-Reference Engine.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Optional, List, Dict


# Canonical schedule fields, in the order used for mapping and reporting
CANONICAL_FIELDS = (
    'type_designation',
    'manufacturer',
    'model',
    'description',
    'lumens',
    'cct',
    'wattage',
    'mounting_type',
    'voltage',
    'lamp_type',
    'application',
    'dimming_protocol',
    'cri',
    'notes',
    'quantity',
)

NUMERIC_FIELDS = frozenset(['lumens', 'cct', 'wattage', 'cri', 'quantity'])


class MatchStatus(Enum):
    """Where a schedule item is in the cross-reference workflow."""
    PENDING = "pending"
    MATCHED = "matched"       # Proposals exist, awaiting review
    NO_MATCH = "no_match"     # Nothing on the line card scored above zero
    ACCEPTED = "accepted"
    MANUAL = "manual"


class CrossReferenceStatus(Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class RawTable:
    """Header row plus data rows of an uploaded table, cells as trimmed strings."""
    headers: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


@dataclass
class ColumnMapping:
    """
    Binds each canonical field to the source header it is read from.
    None means the field is unbound.
    """
    type_designation: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    description: Optional[str] = None
    lumens: Optional[str] = None
    cct: Optional[str] = None
    wattage: Optional[str] = None
    mounting_type: Optional[str] = None
    voltage: Optional[str] = None
    lamp_type: Optional[str] = None
    application: Optional[str] = None
    dimming_protocol: Optional[str] = None
    cri: Optional[str] = None
    notes: Optional[str] = None
    quantity: Optional[str] = None

    def get(self, field_name: str) -> Optional[str]:
        self._check_field(field_name)
        return getattr(self, field_name)

    def bind(self, field_name: str, header: Optional[str]):
        """Bind a field to a header (None unbinds it)."""
        self._check_field(field_name)
        setattr(self, field_name, header or None)

    def unbind(self, field_name: str):
        self.bind(field_name, None)

    def bound_fields(self) -> List[str]:
        return [name for name in CANONICAL_FIELDS if getattr(self, name)]

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {name: getattr(self, name) for name in CANONICAL_FIELDS}

    @staticmethod
    def _check_field(field_name: str):
        if field_name not in CANONICAL_FIELDS:
            raise KeyError(f"Unknown schedule field: {field_name}")


@dataclass
class ScheduleItem:
    """A single normalized line of a luminaire schedule."""
    row_number: int = 0

    type_designation: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    description: Optional[str] = None

    # Performance attributes
    lumens: Optional[float] = None
    cct: Optional[float] = None
    wattage: Optional[float] = None
    mounting_type: Optional[str] = None
    voltage: Optional[str] = None
    lamp_type: Optional[str] = None
    application: Optional[str] = None
    dimming_protocol: Optional[str] = None
    cri: Optional[float] = None

    notes: Optional[str] = None
    quantity: float = 1.0

    # Workflow state
    on_line_card: bool = False
    match_status: MatchStatus = MatchStatus.PENDING

    @property
    def specified_name(self) -> str:
        """Specified manufacturer and model as written on the schedule."""
        parts = [self.manufacturer or "Unknown", self.model or "Unknown"]
        return " - ".join(parts)

    def to_dict(self) -> Dict:
        data = {name: getattr(self, name) for name in CANONICAL_FIELDS}
        data['row_number'] = self.row_number
        data['on_line_card'] = self.on_line_card
        data['match_status'] = self.match_status.value
        return data


@dataclass
class Manufacturer:
    name: str
    website: Optional[str] = None
    active: bool = True


@dataclass
class Product:
    """A catalog entry of a represented (or representable) manufacturer."""
    manufacturer: Manufacturer
    model_number: str

    category: Optional[str] = None
    form_factor: Optional[str] = None

    # Technical specs
    lumens: Optional[float] = None
    cct: Optional[float] = None
    wattage: Optional[float] = None
    voltage: Optional[str] = None
    mounting_type: Optional[str] = None
    cri: Optional[float] = None
    dimming_protocol: Optional[str] = None

    description: Optional[str] = None
    discontinued: bool = False

    @property
    def manufacturer_name(self) -> str:
        return self.manufacturer.name

    @property
    def display_name(self) -> str:
        """Human-readable product name."""
        return f"{self.manufacturer.name} {self.model_number}"

    def to_dict(self) -> Dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['manufacturer'] = self.manufacturer.name
        return data


@dataclass
class ScoreBreakdown:
    """Credit earned per rubric criterion, with the clause explaining it."""
    mounting_score: float = 0.0
    mounting_reason: str = ""

    cct_score: float = 0.0
    cct_reason: str = ""

    lumens_score: float = 0.0
    lumens_reason: str = ""

    cri_score: float = 0.0
    cri_reason: str = ""

    voltage_score: float = 0.0
    voltage_reason: str = ""

    wattage_score: float = 0.0
    wattage_reason: str = ""

    @property
    def total(self) -> float:
        """Unrounded sum of all criteria."""
        return (self.mounting_score + self.cct_score +
                self.lumens_score + self.cri_score +
                self.voltage_score + self.wattage_score)

    @property
    def reasons(self) -> List[str]:
        """Clauses of the criteria that earned credit, in rubric order."""
        ordered = [
            (self.mounting_score, self.mounting_reason),
            (self.cct_score, self.cct_reason),
            (self.lumens_score, self.lumens_reason),
            (self.cri_score, self.cri_reason),
            (self.voltage_score, self.voltage_reason),
            (self.wattage_score, self.wattage_reason),
        ]
        return [reason for score, reason in ordered if score > 0 and reason]

    @property
    def rationale(self) -> str:
        return ". ".join(self.reasons)


@dataclass
class ScoredCandidate:
    """A product ranked against one schedule item."""
    product: Product
    score: int
    rationale: str
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)


@dataclass
class CrossReference:
    """A proposed substitute for a schedule item."""
    schedule_item: ScheduleItem
    product: Product
    match_score: int
    match_reasoning: str = ""
    status: CrossReferenceStatus = CrossReferenceStatus.PROPOSED


@dataclass
class MatchResult:
    """A schedule item together with its cross-reference proposals."""
    schedule_item: ScheduleItem
    cross_references: List[CrossReference] = field(default_factory=list)

    @property
    def accepted(self) -> Optional[CrossReference]:
        for cross_ref in self.cross_references:
            if cross_ref.status == CrossReferenceStatus.ACCEPTED:
                return cross_ref
        return None

    @property
    def accepted_product(self) -> Optional[Product]:
        accepted = self.accepted
        return accepted.product if accepted else None

    @property
    def best(self) -> Optional[CrossReference]:
        return self.cross_references[0] if self.cross_references else None

    @property
    def needs_review(self) -> bool:
        """Proposals exist but none has been decided on yet."""
        return self.schedule_item.match_status == MatchStatus.MATCHED

    def accept(self, cross_ref: CrossReference):
        """Accept one proposal; every other proposal for the item is rejected."""
        self._check_proposal(cross_ref)
        for other in self.cross_references:
            if other is not cross_ref:
                other.status = CrossReferenceStatus.REJECTED
        cross_ref.status = CrossReferenceStatus.ACCEPTED
        self.schedule_item.match_status = MatchStatus.ACCEPTED

    def reject(self, cross_ref: CrossReference):
        self._check_proposal(cross_ref)
        cross_ref.status = CrossReferenceStatus.REJECTED

    def _check_proposal(self, cross_ref: CrossReference):
        if not any(other is cross_ref for other in self.cross_references):
            raise ValueError(
                f"{cross_ref.product.display_name} is not a proposal for "
                f"row {self.schedule_item.row_number}"
            )
