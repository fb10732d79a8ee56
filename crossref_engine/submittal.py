"""
Submittal and proposal reports.

A submittal lists every schedule item with what will actually be
supplied: the specified product when the agency carries it, otherwise
the accepted substitute.
"""

import csv
import json
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import List, Union

from .models import MatchResult, CrossReferenceStatus
from .scoring import format_number

AS_SPECIFIED = "On line card - as specified"
NO_ALTERNATIVE = "No alternative selected"
BLANK = "-"


@dataclass
class SubmittalRow:
    """One line of the submittal table."""
    type_designation: str
    specified_manufacturer: str
    specified_model: str
    proposed: str
    lumens: str
    cct: str
    wattage: str
    mounting: str
    quantity: str


def _value(value, suffix: str = "") -> str:
    if value is None or value == "":
        return BLANK
    if isinstance(value, (int, float)):
        return format_number(value) + suffix
    return f"{value}{suffix}"


class SubmittalBuilder:
    """Builds submittal and proposal reports from match results."""

    def __init__(self, results: List[MatchResult], project_name: str = "Untitled Project"):
        self.results = results
        self.project_name = project_name

    def rows(self) -> List[SubmittalRow]:
        """Submittal rows ordered by type designation."""
        ordered = sorted(
            self.results,
            key=lambda r: (r.schedule_item.type_designation is None,
                           (r.schedule_item.type_designation or "").lower(),
                           r.schedule_item.row_number)
        )
        return [self._build_row(result) for result in ordered]

    def _build_row(self, result: MatchResult) -> SubmittalRow:
        item = result.schedule_item
        product = result.accepted_product

        if item.on_line_card:
            proposed = AS_SPECIFIED
        elif product:
            proposed = product.display_name
        else:
            proposed = NO_ALTERNATIVE

        # Accepted product's values win, the schedule's fill the gaps
        def pick(attr):
            if product is not None and getattr(product, attr):
                return getattr(product, attr)
            return getattr(item, attr)

        return SubmittalRow(
            type_designation=_value(item.type_designation),
            specified_manufacturer=_value(item.manufacturer),
            specified_model=_value(item.model),
            proposed=proposed,
            lumens=_value(pick('lumens')),
            cct=_value(pick('cct'), "K"),
            wattage=_value(pick('wattage'), "W"),
            mounting=_value(pick('mounting_type')),
            quantity=_value(item.quantity),
        )

    def format_text(self) -> str:
        """Format the submittal as a plain-text table."""
        rows = self.rows()
        headers = ["Type", "Specified", "Proposed Alternative", "Lumens",
                   "CCT", "Wattage", "Mounting", "Qty"]
        table = [
            [row.type_designation,
             f"{row.specified_manufacturer} {row.specified_model}",
             row.proposed, row.lumens, row.cct, row.wattage,
             row.mounting, row.quantity]
            for row in rows
        ]
        widths = [
            max([len(headers[i])] + [len(line[i]) for line in table])
            for i in range(len(headers))
        ]

        lines = []
        lines.append("=" * 70)
        lines.append("LIGHTING SUBMITTAL")
        lines.append(self.project_name)
        lines.append(f"Generated {datetime.now().strftime('%Y-%m-%d')}")
        lines.append("=" * 70)
        lines.append("  ".join(h.ljust(w) for h, w in zip(headers, widths)))
        lines.append("  ".join("-" * w for w in widths))
        for line in table:
            lines.append("  ".join(cell.ljust(w) for cell, w in zip(line, widths)).rstrip())

        return "\n".join(lines)

    def write(self, output_path: Union[str, Path]):
        """Write the submittal to file (CSV, JSON, or TXT)."""
        path = Path(output_path)
        suffix = path.suffix.lower()

        if suffix == '.csv':
            with open(path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f)
                writer.writerow(['Type', 'Specified_Manufacturer', 'Specified_Model',
                                 'Proposed_Alternative', 'Lumens', 'CCT', 'Wattage',
                                 'Mounting', 'Qty'])
                for row in self.rows():
                    writer.writerow([row.type_designation, row.specified_manufacturer,
                                     row.specified_model, row.proposed, row.lumens,
                                     row.cct, row.wattage, row.mounting, row.quantity])
        elif suffix == '.json':
            output = {
                'project': self.project_name,
                'generated_at': datetime.now().isoformat(),
                'items': [asdict(row) for row in self.rows()],
            }
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(output, f, indent=2, ensure_ascii=False)
        else:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(self.format_text())

    def format_proposals(self) -> str:
        """Format every item's ranked proposals for review."""
        lines = []

        total = len(self.results)
        matched = sum(1 for r in self.results if r.cross_references)
        on_card = sum(1 for r in self.results if r.schedule_item.on_line_card)

        lines.append("=" * 70)
        lines.append("CROSS-REFERENCE PROPOSALS")
        lines.append("=" * 70)
        lines.append(f"Total Items: {total}")
        lines.append(f"On Line Card: {on_card}")
        lines.append(f"With Proposals: {matched}")
        lines.append(f"No Match: {total - on_card - matched}")
        lines.append("=" * 70)
        lines.append("")

        for result in self.results:
            lines.append(self.format_result(result))
            lines.append("")

        return "\n".join(lines)

    def format_result(self, result: MatchResult) -> str:
        item = result.schedule_item
        lines = []

        label = item.type_designation or f"Row {item.row_number}"
        lines.append(f"{label}: {item.specified_name}")
        lines.append("-" * 70)

        if item.on_line_card:
            lines.append(f"  {AS_SPECIFIED}")
            return "\n".join(lines)

        if not result.cross_references:
            lines.append("  No match found on line card")
            return "\n".join(lines)

        for rank, cross_ref in enumerate(result.cross_references, 1):
            marker = ""
            if cross_ref.status != CrossReferenceStatus.PROPOSED:
                marker = f" [{cross_ref.status.value.upper()}]"
            lines.append(f"  {rank}. {cross_ref.product.display_name} - "
                         f"score {cross_ref.match_score}{marker}")
            lines.append(f"     {cross_ref.match_reasoning}")

        return "\n".join(lines)

    def write_proposals(self, output_path: Union[str, Path]):
        """Write proposals to file (CSV, JSON, or TXT)."""
        path = Path(output_path)
        suffix = path.suffix.lower()

        if suffix == '.csv':
            self._write_proposals_csv(path)
        elif suffix == '.json':
            self._write_proposals_json(path)
        else:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(self.format_proposals())

    def _write_proposals_csv(self, path: Path):
        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(['Schedule_Row', 'Type', 'Specified_Manufacturer',
                             'Specified_Model', 'Match_Status', 'Rank',
                             'Proposed_Manufacturer', 'Proposed_Model',
                             'Match_Score', 'Match_Reasoning', 'Status'])

            for result in self.results:
                item = result.schedule_item
                prefix = [item.row_number, item.type_designation or '',
                          item.manufacturer or '', item.model or '',
                          item.match_status.value]
                if not result.cross_references:
                    writer.writerow(prefix + ['', '', '', '', '', ''])
                    continue
                for rank, cross_ref in enumerate(result.cross_references, 1):
                    writer.writerow(prefix + [
                        rank,
                        cross_ref.product.manufacturer.name,
                        cross_ref.product.model_number,
                        cross_ref.match_score,
                        cross_ref.match_reasoning,
                        cross_ref.status.value,
                    ])

    def _write_proposals_json(self, path: Path):
        output = {
            'project': self.project_name,
            'generated_at': datetime.now().isoformat(),
            'total_items': len(self.results),
            'results': [
                {
                    'schedule_item': result.schedule_item.to_dict(),
                    'cross_references': [
                        {
                            'product': cross_ref.product.to_dict(),
                            'match_score': cross_ref.match_score,
                            'match_reasoning': cross_ref.match_reasoning,
                            'status': cross_ref.status.value,
                        }
                        for cross_ref in result.cross_references
                    ],
                }
                for result in self.results
            ],
        }

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(output, f, indent=2, ensure_ascii=False)

