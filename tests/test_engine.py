#!/usr/bin/env python3
"""
Test suite for the Luminaire Cross-Reference Engine workflow.
"""

import csv
import json
import os
import sys
import tempfile
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from crossref_engine import (
    CatalogError, CrossReference, CrossReferenceEngine, LineCard, MatchStatus, Product,
    ProductCatalog, RawTable, ScheduleItem, SubmittalBuilder, auto_detect_columns,
    parse_table
)
from crossref_engine.cli import main as cli_main, parse_overrides
from crossref_engine.models import ColumnMapping, CrossReferenceStatus, Manufacturer


CATALOG_CSV = """manufacturer,model_number,category,form_factor,lumens,cct,wattage,voltage,mounting_type,cri,dimming_protocol,description,discontinued
Acme,ACM-DL6-35,Downlight,Round,2000,3500,20,120V,Recessed,90,0-10V,6in downlight,false
ACME,ACM-DL6-30,Downlight,Round,2000,3000,20,120V,Recessed,80,0-10V,6in downlight 3000K,FALSE
Acme,ACM-OLD,Downlight,Round,2000,3500,20,120V,Recessed,90,,Old downlight,TRUE
Brightway,BW-LIN4,Linear,Linear,4000,4000,32,277V,Pendant,85,DALI,4ft linear,
Brightway,,Linear,,,,,,,,,,
Other Co,OC-DL6,Downlight,Round,2000,3500,20,120V,Recessed,90,,,false
"""

SCHEDULE_CSV = """Type,MFR,Catalog #,Lumens,CCT,Watts,Mounting,Voltage,Qty
A,Lithonia,LDN6,2000,3500K,20W,Recessed,120V,10
B,acme,ACM-DL6-35,2000,3500,20,Recessed,120V,4
C,Cooper,XYZ,,,,,,2
"""


def write_file(directory, name, text):
    path = os.path.join(directory, name)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(text)
    return path


def make_engine(directory, max_proposals=3) -> CrossReferenceEngine:
    catalog = ProductCatalog()
    catalog.load_file(write_file(directory, "catalog.csv", CATALOG_CSV))
    line_card = LineCard("Test Agency", ["Acme", "Brightway"])
    return CrossReferenceEngine(catalog, line_card, max_proposals=max_proposals)


def test_catalog_import():
    """Test catalog loading from the import template."""
    print("Testing Catalog Import...")

    with tempfile.TemporaryDirectory() as tmp:
        catalog = ProductCatalog()
        summary = catalog.load_file(write_file(tmp, "catalog.csv", CATALOG_CSV))

    assert summary.products_imported == 5
    assert summary.manufacturers_seen == 3
    assert summary.manufacturers_created == 3
    assert summary.rows_skipped == 1
    assert str(summary) == "Imported 5 products across 3 manufacturers (3 new manufacturers created)."

    # "ACME" reuses the manufacturer first seen as "Acme"
    assert len(catalog.manufacturers) == 3
    acme = catalog.get_manufacturer("acme")
    assert acme.name == "Acme"
    assert all(p.manufacturer is acme for p in catalog.get_by_manufacturer("ACME"))

    old = [p for p in catalog.products if p.model_number == "ACM-OLD"][0]
    assert old.discontinued
    first = catalog.products[0]
    assert not first.discontinued
    assert first.lumens == 2000 and first.cct == 3500 and first.cri == 90
    assert first.mounting_type == "Recessed"
    assert first.dimming_protocol == "0-10V"

    stats = catalog.get_statistics()
    assert stats['total_products'] == 5
    assert stats['discontinued'] == 1
    assert stats['by_manufacturer'] == {"Acme": 3, "Brightway": 1, "Other Co": 1}

    print(f"  PASSED ({summary.products_imported} products loaded)")


def test_catalog_import_reuses_existing_manufacturers():
    catalog = ProductCatalog()
    catalog.add_manufacturer("Acme")

    table = RawTable(headers=["Manufacturer", "Model_Number"],
                     rows=[{"Manufacturer": "acme", "Model_Number": "X-1"}])
    summary = catalog.load_table(table)

    assert summary.products_imported == 1
    assert summary.manufacturers_created == 0
    assert catalog.products[0].manufacturer.name == "Acme"


def test_catalog_import_errors():
    catalog = ProductCatalog()

    try:
        catalog.load_table(RawTable(headers=["model_number"], rows=[{"model_number": "X"}]))
        assert False, "Expected CatalogError without manufacturer names"
    except CatalogError as e:
        assert "manufacturer" in str(e)

    try:
        catalog.load_table(RawTable(headers=["manufacturer", "model_number"],
                                    rows=[{"manufacturer": "Acme", "model_number": ""}]))
        assert False, "Expected CatalogError without valid rows"
    except CatalogError as e:
        assert "No valid product rows" in str(e)

    assert catalog.products == []


def test_line_card():
    """Test line card membership."""
    print("Testing Line Card...")

    line_card = LineCard("Test Agency", ["Acme", " Brightway "])

    assert line_card.covers("ACME")
    assert line_card.covers("brightway")
    assert not line_card.covers("Lithonia")
    assert not line_card.covers(None)
    assert len(line_card) == 2

    line_card.remove("acme")
    assert not line_card.covers("Acme")

    with tempfile.TemporaryDirectory() as tmp:
        path = write_file(tmp, "linecard.txt", "# Represented lines\nAcme\n\nBrightway  # since 2024\n")
        loaded = LineCard.load_file(path, "Test Agency")

    assert loaded.manufacturers == {"Acme", "Brightway"}
    assert loaded.agency_name == "Test Agency"

    print("  PASSED")


def test_import_schedule_flags_line_card():
    """Test schedule import marks items carried by the agency."""
    print("Testing Schedule Import...")

    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp)

    items, mapping = engine.import_schedule(SCHEDULE_CSV.encode('utf-8'), "schedule.csv")

    assert mapping.model == "Catalog #"
    assert len(items) == 3
    assert [i.on_line_card for i in items] == [False, True, False]
    assert all(i.match_status == MatchStatus.PENDING for i in items)
    assert items[0].cct == 3500
    assert items[0].quantity == 10

    print("  PASSED")


def test_import_schedule_with_adjusted_mapping():
    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp)

    mapping = ColumnMapping(type_designation="Type", manufacturer="MFR", lumens="Watts")
    items, used = engine.import_schedule(SCHEDULE_CSV.encode('utf-8'), "schedule.csv",
                                         mapping=mapping)

    assert used is mapping
    assert items[0].lumens == 20
    assert items[0].model is None
    assert items[0].quantity == 1


def test_import_table_reuses_parsed_table():
    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp)

    table = parse_table(SCHEDULE_CSV.encode('utf-8'), "schedule.csv")
    mapping = parse_overrides(auto_detect_columns(table.headers), ["notes=Catalog #"])
    items, used = engine.import_table(table, mapping)

    assert used is mapping
    assert [i.notes for i in items] == ["LDN6", "ACM-DL6-35", "XYZ"]
    assert [i.on_line_card for i in items] == [False, True, False]

    from_bytes, _ = engine.import_schedule(SCHEDULE_CSV.encode('utf-8'), "schedule.csv")
    assert [i.to_dict() for i in engine.import_table(table)[0]] == \
           [i.to_dict() for i in from_bytes]


def test_engine_keeps_line_card_added_to_later():
    catalog = ProductCatalog()
    catalog.add_product(Product(manufacturer=Manufacturer("Acme"), model_number="X-1", cri=90))
    line_card = LineCard("Test Agency")

    engine = CrossReferenceEngine(catalog, line_card)
    line_card.add("Acme")

    assert engine.line_card is line_card
    assert engine.catalog is catalog
    assert [p.model_number for p in engine.get_candidates()] == ["X-1"]

    empty = ProductCatalog()
    assert CrossReferenceEngine(empty).catalog is empty


def test_match_items():
    """Test proposals for items not on the line card."""
    print("Testing Matching...")

    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp)

    items, _ = engine.import_schedule(SCHEDULE_CSV.encode('utf-8'), "schedule.csv")
    results = engine.match_items(items)

    assert len(results) == 3
    a, b, c = results

    # Off the line card: ranked substitutes, best first
    assert a.schedule_item.match_status == MatchStatus.MATCHED
    assert [x.product.model_number for x in a.cross_references] == \
           ["ACM-DL6-35", "ACM-DL6-30", "BW-LIN4"]
    assert [x.match_score for x in a.cross_references] == [100, 80, 15]
    assert all(x.status == CrossReferenceStatus.PROPOSED for x in a.cross_references)
    assert a.cross_references[0].match_reasoning.startswith("Mounting type matches. CCT matches (3500K)")
    assert a.needs_review

    # On the line card: accepted as specified
    assert b.schedule_item.match_status == MatchStatus.ACCEPTED
    assert b.cross_references == []

    # Nothing specified except quantity: only CRI credit remains
    assert c.schedule_item.match_status == MatchStatus.MATCHED
    assert all(x.match_score == 15 for x in c.cross_references)

    # Never proposed: discontinued or not represented
    proposed = {x.product.model_number for r in results for x in r.cross_references}
    assert "ACM-OLD" not in proposed
    assert "OC-DL6" not in proposed

    print("  PASSED")


def test_match_items_respects_proposal_limit_and_status():
    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp, max_proposals=1)

    items, _ = engine.import_schedule(SCHEDULE_CSV.encode('utf-8'), "schedule.csv")
    items[2].match_status = MatchStatus.MANUAL

    results = engine.match_items(items)

    assert len(results[0].cross_references) == 1
    assert results[2].cross_references == []
    assert results[2].schedule_item.match_status == MatchStatus.MANUAL


def test_no_match():
    catalog = ProductCatalog()
    catalog.add_product(Product(manufacturer=Manufacturer("Acme"), model_number="DIM",
                                mounting_type="Pendant", cri=70))
    engine = CrossReferenceEngine(catalog, LineCard("Test Agency", ["Acme"]))

    item = ScheduleItem(row_number=2, manufacturer="Lithonia", mounting_type="Recessed")
    results = engine.match_items([item])

    assert results[0].cross_references == []
    assert item.match_status == MatchStatus.NO_MATCH


def test_candidates_require_line_card():
    catalog = ProductCatalog()
    catalog.add_product(Product(manufacturer=Manufacturer("Acme"), model_number="X"))

    engine = CrossReferenceEngine(catalog, LineCard("Test Agency"))
    try:
        engine.get_candidates()
        assert False, "Expected RuntimeError for empty line card"
    except RuntimeError as e:
        assert "line card" in str(e)

    engine = CrossReferenceEngine(catalog, LineCard("Test Agency", ["Brightway"]))
    try:
        engine.match_items([ScheduleItem()])
        assert False, "Expected RuntimeError with no line card products"
    except RuntimeError as e:
        assert "No products" in str(e)


def test_accept_and_reject():
    """Test reviewer decisions on proposals."""
    print("Testing Accept/Reject...")

    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp)

    items, _ = engine.import_schedule(SCHEDULE_CSV.encode('utf-8'), "schedule.csv")
    result = engine.match_items(items)[0]
    first, second, third = result.cross_references

    result.reject(first)
    assert first.status == CrossReferenceStatus.REJECTED
    assert result.schedule_item.match_status == MatchStatus.MATCHED

    result.accept(second)
    assert second.status == CrossReferenceStatus.ACCEPTED
    assert first.status == CrossReferenceStatus.REJECTED
    assert third.status == CrossReferenceStatus.REJECTED
    assert result.schedule_item.match_status == MatchStatus.ACCEPTED
    assert result.accepted_product is second.product
    assert not result.needs_review

    # Equal to a proposal but not one of them
    foreign = CrossReference(schedule_item=second.schedule_item, product=second.product,
                             match_score=second.match_score,
                             match_reasoning=second.match_reasoning)
    try:
        result.accept(foreign)
        assert False, "Expected ValueError for a foreign proposal"
    except ValueError:
        pass

    print("  PASSED")


def test_submittal_rows():
    """Test submittal content for accepted, on-card and open items."""
    print("Testing Submittal...")

    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp)

    items, _ = engine.import_schedule(SCHEDULE_CSV.encode('utf-8'), "schedule.csv")
    # Fill a gap the accepted product will cover
    items[0].mounting_type = None
    results = engine.match_items(items)
    results[0].accept(results[0].best)

    builder = SubmittalBuilder(list(reversed(results)), project_name="Test Project")
    rows = builder.rows()

    assert [r.type_designation for r in rows] == ["A", "B", "C"]

    a, b, c = rows
    assert a.proposed == "Acme ACM-DL6-35"
    assert a.specified_manufacturer == "Lithonia"
    assert (a.lumens, a.cct, a.wattage, a.mounting, a.quantity) == \
           ("2000", "3500K", "20W", "Recessed", "10")

    assert b.proposed == "On line card - as specified"
    assert (b.lumens, b.cct, b.wattage) == ("2000", "3500K", "20W")

    assert c.proposed == "No alternative selected"
    assert (c.lumens, c.cct, c.wattage, c.mounting, c.quantity) == ("-", "-", "-", "-", "2")

    text = builder.format_text()
    assert "LIGHTING SUBMITTAL" in text
    assert "Test Project" in text
    assert "Acme ACM-DL6-35" in text

    print("  PASSED")


def test_report_files():
    with tempfile.TemporaryDirectory() as tmp:
        engine = make_engine(tmp)
        schedule = write_file(tmp, "schedule.csv", SCHEDULE_CSV)

        proposals_csv = os.path.join(tmp, "proposals.csv")
        results = engine.process_schedule_file(schedule, output_path=proposals_csv)
        with open(proposals_csv, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))

        proposals_json = os.path.join(tmp, "proposals.json")
        SubmittalBuilder(results).write_proposals(proposals_json)
        with open(proposals_json, encoding='utf-8') as f:
            proposals = json.load(f)

        submittal_json = os.path.join(tmp, "submittal.json")
        SubmittalBuilder(results, "Test Project").write(submittal_json)
        with open(submittal_json, encoding='utf-8') as f:
            submittal = json.load(f)

        proposals_txt = os.path.join(tmp, "proposals.txt")
        SubmittalBuilder(results).write_proposals(proposals_txt)
        with open(proposals_txt, encoding='utf-8') as f:
            report = f.read()

    # Row A and C each have three proposals, B one row without any
    assert len(rows) == 7
    assert rows[0]['Type'] == "A"
    assert rows[0]['Proposed_Model'] == "ACM-DL6-35"
    assert rows[0]['Match_Score'] == "100"
    assert [r['Match_Status'] for r in rows if r['Type'] == "B"] == ["accepted"]

    assert proposals['total_items'] == 3
    first = proposals['results'][0]
    assert first['schedule_item']['type_designation'] == "A"
    assert first['cross_references'][0]['product']['manufacturer'] == "Acme"

    assert submittal['project'] == "Test Project"
    assert len(submittal['items']) == 3

    assert "CROSS-REFERENCE PROPOSALS" in report
    assert "On line card - as specified" in report


def test_cli_import_and_submittal():
    """Test the command line entry points."""
    print("Testing CLI...")

    with tempfile.TemporaryDirectory() as tmp:
        schedule = write_file(tmp, "schedule.csv", SCHEDULE_CSV)
        catalog = write_file(tmp, "catalog.csv", CATALOG_CSV)
        line_card = write_file(tmp, "linecard.txt", "Acme\n")

        items_json = os.path.join(tmp, "items.json")
        cli_main(["import", schedule, "--map", "notes=Catalog #", "-o", items_json])
        with open(items_json, encoding='utf-8') as f:
            items = json.load(f)

        submittal_csv = os.path.join(tmp, "submittal.csv")
        cli_main(["submittal", schedule, "-c", catalog, "-l", line_card,
                  "-m", "Brightway", "-p", "Test Project", "-o", submittal_csv])
        with open(submittal_csv, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))

    assert len(items) == 3
    assert items[0]['type_designation'] == "A"
    assert items[0]['notes'] == "LDN6"
    assert items[0]['match_status'] == "pending"

    assert [r['Proposed_Alternative'] for r in rows] == [
        "Acme ACM-DL6-35", "On line card - as specified", "Acme ACM-DL6-35",
    ]

    print("  PASSED")


def test_cli_mapping_overrides():
    mapping = parse_overrides(ColumnMapping(model="Catalog #"), ["model=", "cri = CRI "])
    assert mapping.model is None
    assert mapping.cri == "CRI"

    for bad in (["model"], ["colour=CCT"]):
        try:
            parse_overrides(ColumnMapping(), bad)
            assert False, f"Expected ValueError for {bad}"
        except ValueError:
            pass


def run_all_tests():
    """Run all tests."""
    print("=" * 60)
    print("RUNNING CROSS-REFERENCE ENGINE TESTS")
    print("=" * 60)
    print()

    tests = [
        test_catalog_import,
        test_catalog_import_reuses_existing_manufacturers,
        test_catalog_import_errors,
        test_line_card,
        test_import_schedule_flags_line_card,
        test_import_schedule_with_adjusted_mapping,
        test_import_table_reuses_parsed_table,
        test_engine_keeps_line_card_added_to_later,
        test_match_items,
        test_match_items_respects_proposal_limit_and_status,
        test_no_match,
        test_candidates_require_line_card,
        test_accept_and_reject,
        test_submittal_rows,
        test_report_files,
        test_cli_import_and_submittal,
        test_cli_mapping_overrides,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            passed += 1
        except AssertionError as e:
            print(f"  FAILED {test.__name__}: {e}")
            failed += 1
        except Exception as e:
            print(f"  ERROR {test.__name__}: {e}")
            failed += 1

    print()
    print("=" * 60)
    print(f"RESULTS: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
