#!/usr/bin/env python3
"""
Demonstration of the Luminaire Cross-Reference Engine.

This script walks through the agency workflow:
1. Detect which columns of an exported schedule hold which fields
2. Import the schedule into normalized items
3. Propose ranked substitutes from line card manufacturers
4. Accept proposals and build the submittal
"""

import sys
from pathlib import Path

# Add to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from crossref_engine import (
    CrossReferenceEngine, LineCard, ProductCatalog, SubmittalBuilder, parse_table
)
from crossref_engine.column_mapper import auto_detect_columns


SAMPLE_SCHEDULE = b"""Fixture Type,Manufacturer,Catalog Number,Description,Delivered Lumens,Color Temp,Watts,Mounting,Voltage,Qty
A1,Lithonia,LDN6 35/20,6in recessed downlight,"2,000 lm",3500K,20W,Recessed,120-277V,24
A2,Lithonia,LDN4 35/10,4in recessed downlight,1000,3500K,10W,Recessed,120-277V,12
B1,Acuity,CPX 2x4,Flat panel,4000,4000,32,Recessed,120-277V,40
C1,Focal Point,Seem 1,Linear pendant,3500,Tunable White,30,Pendant,120-277V,8
D1,Brightway,BW-WP1,Wall pack,3000,4000K,25W,Wall,120-277V,6
"""

SAMPLE_CATALOG = b"""manufacturer,model_number,category,form_factor,lumens,cct,wattage,voltage,mounting_type,cri,dimming_protocol,description,discontinued
Acme,ACM-DL6-35,Downlight,Round,2100,3500,19,120-277V,Recessed,90,0-10V,6in downlight,false
Acme,ACM-DL4-35,Downlight,Round,1050,3500,9,120-277V,Recessed,90,0-10V,4in downlight,false
Acme,ACM-DL6-OLD,Downlight,Round,2000,3500,22,120-277V,Recessed,80,,Superseded,true
Acme,ACM-FP24-40,Panel,Rectangular,3900,4000,30,120-277V,Recessed,83,0-10V,2x4 flat panel,false
Brightway,BW-LIN4-TW,Linear,Linear,3600,3500,32,120-277V,Pendant,90,DALI,4ft linear pendant,false
Brightway,BW-WP1,Wall Pack,Rectangular,3000,4000,25,120-277V,Wall,70,,Wall pack,false
"""


def print_header(text):
    """Print a formatted header."""
    print("\n" + "=" * 70)
    print(text)
    print("=" * 70)


def main():
    """Run the demonstration."""
    print_header("LUMINAIRE CROSS-REFERENCE ENGINE - DEMONSTRATION")

    catalog = ProductCatalog()
    summary = catalog.load_table(parse_table(SAMPLE_CATALOG, "catalog.csv"))
    print(f"\n{summary}")

    line_card = LineCard("Demo Agency", ["Acme", "Brightway"])
    print(f"Line card: {', '.join(sorted(line_card.manufacturers))}")

    engine = CrossReferenceEngine(catalog, line_card)

    # Demo 1: Column detection
    print_header("DEMO 1: Column Detection")
    table = parse_table(SAMPLE_SCHEDULE, "schedule.csv")
    mapping = auto_detect_columns(table.headers)
    for field_name, header in mapping.as_dict().items():
        print(f"  {field_name:<18} <- {header if header else '(unbound)'}")

    # Demo 2: Import
    print_header("DEMO 2: Schedule Import")
    items, _ = engine.import_schedule(SAMPLE_SCHEDULE, "schedule.csv", mapping=mapping)
    for item in items:
        flag = "on line card" if item.on_line_card else "needs substitute"
        print(f"  {item.type_designation}: {item.specified_name} "
              f"(lumens={item.lumens}, cct={item.cct}) - {flag}")

    # Demo 3: Proposals
    print_header("DEMO 3: Ranked Proposals")
    results = engine.match_items(items)
    builder = SubmittalBuilder(results, project_name="Demo Office Fit-Out")
    for result in results:
        print()
        print(builder.format_result(result))

    # Demo 4: Review and submittal
    print_header("DEMO 4: Review and Submittal")
    for result in results:
        if result.best is not None:
            result.accept(result.best)
            print(f"  {result.schedule_item.type_designation}: accepted "
                  f"{result.best.product.display_name} ({result.best.match_score})")

    print()
    print(builder.format_text())

    print_header("DEMONSTRATION COMPLETE")
    print("""
For production use:
  python -m crossref_engine detect schedule.xlsx
  python -m crossref_engine match schedule.xlsx -c catalog.csv -l linecard.txt
  python -m crossref_engine submittal schedule.xlsx -c catalog.csv -l linecard.txt -o submittal.csv
""")


if __name__ == '__main__':
    main()
