"""
Cross-Reference Engine - Orchestrates schedule import and matching.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .catalog import LineCard, ProductCatalog
from .column_mapper import apply_mapping, auto_detect_columns
from .models import (
    ColumnMapping, CrossReference, MatchResult, MatchStatus, Product,
    RawTable, ScheduleItem
)
from .scoring import ScoringEngine, ScoringWeights
from .submittal import SubmittalBuilder
from .table_parser import parse_table

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROPOSALS = 3


class CrossReferenceEngine:
    """
    Luminaire schedule cross-referencing.

    Items whose specified manufacturer is on the agency's line card are
    accepted as specified. Every other item is scored against the line
    card's catalog and gets up to ``max_proposals`` ranked substitutes
    for a person to accept or reject.
    """

    def __init__(self, catalog: Optional[ProductCatalog] = None,
                 line_card: Optional[LineCard] = None,
                 weights: Optional[ScoringWeights] = None,
                 max_proposals: int = DEFAULT_MAX_PROPOSALS):
        """
        Initialize the cross-reference engine.

        Args:
            catalog: Products available for substitution
            line_card: Manufacturers the agency represents
            weights: Optional custom scoring weights
            max_proposals: How many ranked substitutes to keep per item
        """
        self.catalog = catalog if catalog is not None else ProductCatalog()
        self.line_card = line_card if line_card is not None else LineCard()
        self.scorer = ScoringEngine(weights)
        self.max_proposals = max_proposals

    def load_catalog(self, filepath: Union[str, Path]):
        """Import a catalog file into the engine's catalog."""
        return self.catalog.load_file(filepath)

    def import_schedule(self, source: Union[str, Path, bytes],
                        filename: Optional[str] = None,
                        mapping: Optional[ColumnMapping] = None
                        ) -> Tuple[List[ScheduleItem], ColumnMapping]:
        """
        Read a schedule file into normalized items.

        Args:
            source: Path to the schedule, or its raw bytes
            filename: Original name of the file when passing bytes
            mapping: Column mapping to use instead of auto-detection

        Returns:
            (items, mapping actually applied)
        """
        return self.import_table(parse_table(source, filename), mapping)

    def import_table(self, table: RawTable,
                     mapping: Optional[ColumnMapping] = None
                     ) -> Tuple[List[ScheduleItem], ColumnMapping]:
        """Normalize an already parsed schedule table."""
        if mapping is None:
            mapping = auto_detect_columns(table.headers)

        items = apply_mapping(table.rows, mapping)
        for item in items:
            item.on_line_card = self.line_card.covers(item.manufacturer)

        logger.info("Imported %d schedule items (%d on line card)",
                    len(items), sum(1 for i in items if i.on_line_card))
        return items, mapping

    def get_candidates(self) -> List[Product]:
        """Current products of line card manufacturers."""
        if not self.line_card:
            raise RuntimeError("No manufacturers on the line card. Add some first.")

        candidates = self.catalog.products_for(self.line_card.manufacturers)
        if not candidates:
            raise RuntimeError(
                "No products found from line card manufacturers. Import some first."
            )
        return candidates

    def match_items(self, items: List[ScheduleItem]) -> List[MatchResult]:
        """
        Propose substitutes for every pending item not on the line card.

        Items already decided (matched, accepted, manual...) are returned
        without new proposals.
        """
        candidates = self.get_candidates()

        results = []
        for item in items:
            result = MatchResult(schedule_item=item)

            if item.match_status == MatchStatus.PENDING:
                if item.on_line_card:
                    item.match_status = MatchStatus.ACCEPTED
                else:
                    result.cross_references = self.propose(item, candidates)
                    item.match_status = (MatchStatus.MATCHED if result.cross_references
                                         else MatchStatus.NO_MATCH)

            results.append(result)

        logger.info("Matched %d items: %d with proposals, %d without",
                    len(results),
                    sum(1 for r in results if r.schedule_item.match_status == MatchStatus.MATCHED),
                    sum(1 for r in results if r.schedule_item.match_status == MatchStatus.NO_MATCH))
        return results

    def propose(self, item: ScheduleItem,
                candidates: Optional[List[Product]] = None) -> List[CrossReference]:
        """Top-ranked substitutes for one item, as proposed cross references."""
        if candidates is None:
            candidates = self.get_candidates()

        ranked = self.scorer.score_candidates(item, candidates)

        return [
            CrossReference(
                schedule_item=item,
                product=candidate.product,
                match_score=candidate.score,
                match_reasoning=candidate.rationale,
            )
            for candidate in ranked[:self.max_proposals]
        ]

    def process_schedule_file(self, filepath: Union[str, Path],
                              output_path: Optional[Union[str, Path]] = None,
                              mapping: Optional[ColumnMapping] = None
                              ) -> List[MatchResult]:
        """
        Import a schedule file and propose substitutes for it.

        Args:
            filepath: Path to the schedule (CSV or Excel)
            output_path: Optional path for the proposal report (csv, json or txt)
            mapping: Column mapping to use instead of auto-detection
        """
        items, _ = self.import_schedule(filepath, mapping=mapping)
        results = self.match_items(items)

        if output_path:
            SubmittalBuilder(results).write_proposals(output_path)

        return results

    def get_statistics(self) -> dict:
        """Get catalog and engine statistics."""
        weights = self.scorer.weights
        return {
            'catalog': self.catalog.get_statistics(),
            'line_card': sorted(self.line_card.manufacturers, key=str.lower),
            'max_proposals': self.max_proposals,
            'scoring_weights': {
                'mounting_type': weights.mounting_type,
                'cct': weights.cct,
                'lumens': weights.lumens,
                'cri': weights.cri,
                'voltage': weights.voltage,
                'wattage': weights.wattage,
            },
        }
