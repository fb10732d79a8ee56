#!/usr/bin/env python3
"""
Command-Line Interface for the Luminaire Cross-Reference Engine.
"""

import argparse
import csv
import json
import logging
import sys
from pathlib import Path

from .catalog import LineCard, ProductCatalog
from .column_mapper import auto_detect_columns
from .engine import CrossReferenceEngine, DEFAULT_MAX_PROPOSALS
from .models import CANONICAL_FIELDS, ColumnMapping, MatchStatus
from .submittal import SubmittalBuilder
from .table_parser import parse_table


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Luminaire schedule cross-referencing for lighting agencies',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # See which columns of a schedule were recognized
  python -m crossref_engine detect schedule.xlsx

  # Normalize a schedule, overriding one column
  python -m crossref_engine import schedule.csv --map model="Catalog Number" -o items.json

  # Propose substitutes from the agency's line card
  python -m crossref_engine match schedule.csv -c catalog.csv -l linecard.txt -o proposals.csv

  # Accept the best proposal for every item and write a submittal
  python -m crossref_engine submittal schedule.csv -c catalog.csv -l linecard.txt -o submittal.txt
        """
    )
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='More logging (-v info, -vv debug)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Detect command
    detect_parser = subparsers.add_parser('detect', help='Show detected column mapping')
    detect_parser.add_argument('schedule', help='Path to schedule file (CSV or Excel)')

    # Import command
    import_parser = subparsers.add_parser('import', help='Normalize a schedule file')
    import_parser.add_argument('schedule', help='Path to schedule file (CSV or Excel)')
    import_parser.add_argument('-o', '--output', help='Output file path (csv or json)')
    _add_mapping_args(import_parser)

    # Match command
    match_parser = subparsers.add_parser('match', help='Propose substitutes for a schedule')
    match_parser.add_argument('schedule', help='Path to schedule file (CSV or Excel)')
    _add_engine_args(match_parser)
    match_parser.add_argument('-o', '--output', help='Output file path (csv, json, or txt)')
    _add_mapping_args(match_parser)

    # Submittal command
    submittal_parser = subparsers.add_parser(
        'submittal', help='Accept the top proposal for each item and write a submittal')
    submittal_parser.add_argument('schedule', help='Path to schedule file (CSV or Excel)')
    _add_engine_args(submittal_parser)
    submittal_parser.add_argument('-o', '--output', help='Output file path (csv, json, or txt)')
    submittal_parser.add_argument('-p', '--project', default='Untitled Project',
                                  help='Project name printed on the submittal')
    _add_mapping_args(submittal_parser)

    # Stats command
    stats_parser = subparsers.add_parser('stats', help='Show catalog statistics')
    stats_parser.add_argument('-c', '--catalog', required=True, help='Path to catalog file')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=[logging.WARNING, logging.INFO, logging.DEBUG][min(args.verbose, 2)],
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == 'detect':
            run_detect(args)
        elif args.command == 'import':
            run_import(args)
        elif args.command == 'match':
            run_match(args)
        elif args.command == 'submittal':
            run_submittal(args)
        elif args.command == 'stats':
            run_stats(args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _add_engine_args(subparser):
    subparser.add_argument('-c', '--catalog', required=True,
                           help='Path to catalog file (CSV or Excel)')
    subparser.add_argument('-l', '--line-card',
                           help='File listing represented manufacturers, one per line')
    subparser.add_argument('-m', '--manufacturer', action='append', default=[],
                           help='Represented manufacturer (repeatable)')
    subparser.add_argument('--agency', default='My Agency', help='Agency name')
    subparser.add_argument('--proposals', type=int, default=DEFAULT_MAX_PROPOSALS,
                           help='Number of substitutes to propose per item')


def _add_mapping_args(subparser):
    subparser.add_argument('--map', action='append', default=[], metavar='FIELD=HEADER',
                           help='Override a detected column (empty HEADER unbinds it)')


def parse_overrides(mapping: ColumnMapping, overrides) -> ColumnMapping:
    """Apply FIELD=HEADER overrides on top of a detected mapping."""
    for override in overrides:
        if '=' not in override:
            raise ValueError(f"Mapping override must look like FIELD=HEADER: {override}")
        field_name, header = override.split('=', 1)
        field_name = field_name.strip()
        if field_name not in CANONICAL_FIELDS:
            raise ValueError(
                f"Unknown field '{field_name}'. Choose from: {', '.join(CANONICAL_FIELDS)}"
            )
        mapping.bind(field_name, header.strip() or None)
    return mapping


def build_engine(args) -> CrossReferenceEngine:
    """Create an engine from catalog and line card arguments."""
    line_card = (LineCard.load_file(args.line_card, args.agency)
                 if args.line_card else LineCard(args.agency))
    for name in args.manufacturer:
        line_card.add(name)

    catalog = ProductCatalog()
    summary = catalog.load_file(args.catalog)
    print(summary)

    return CrossReferenceEngine(catalog, line_card, max_proposals=args.proposals)


def import_schedule(engine: CrossReferenceEngine, args):
    """Parse the schedule once, apply --map overrides and import it."""
    table = parse_table(args.schedule)
    mapping = parse_overrides(auto_detect_columns(table.headers), args.map)
    items, _ = engine.import_table(table, mapping)
    return items


def run_detect(args):
    """Show which header feeds each field."""
    table = parse_table(args.schedule)
    mapping = auto_detect_columns(table.headers)

    print(f"Columns: {', '.join(table.headers)}")
    print(f"Rows: {len(table.rows)}")
    print("\nDetected mapping:")
    for field_name, header in mapping.as_dict().items():
        print(f"  {field_name:<18} <- {header if header else '(unbound)'}")


def run_import(args):
    """Normalize a schedule and print or write the items."""
    items = import_schedule(CrossReferenceEngine(), args)

    if args.output:
        path = Path(args.output)
        if path.suffix.lower() == '.json':
            with open(path, 'w', encoding='utf-8') as f:
                json.dump([item.to_dict() for item in items], f, indent=2, ensure_ascii=False)
        else:
            with open(path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=['row_number'] + list(CANONICAL_FIELDS))
                writer.writeheader()
                for item in items:
                    row = {name: getattr(item, name) for name in CANONICAL_FIELDS}
                    row['row_number'] = item.row_number
                    writer.writerow(row)
        print(f"{len(items)} schedule items written to: {args.output}")
        return

    for item in items:
        specs = []
        if item.lumens:
            specs.append(f"{item.lumens:.0f}lm")
        if item.cct:
            specs.append(f"{item.cct:.0f}K")
        if item.wattage:
            specs.append(f"{item.wattage:g}W")
        if item.mounting_type:
            specs.append(item.mounting_type)
        print(f"Row {item.row_number} [{item.type_designation or '-'}] "
              f"{item.specified_name} x{item.quantity:g}  {' | '.join(specs)}")


def run_match(args):
    """Propose substitutes for a schedule."""
    engine = build_engine(args)
    items = import_schedule(engine, args)
    results = engine.match_items(items)
    builder = SubmittalBuilder(results)

    if args.output:
        builder.write_proposals(args.output)
        print(f"Proposals written to: {args.output}")
    else:
        print(builder.format_proposals())

    _print_summary(results)


def run_submittal(args):
    """Auto-accept the best proposal per item and write the submittal."""
    engine = build_engine(args)
    items = import_schedule(engine, args)
    results = engine.match_items(items)

    for result in results:
        if result.best is not None:
            result.accept(result.best)

    builder = SubmittalBuilder(results, project_name=args.project)
    if args.output:
        builder.write(args.output)
        print(f"Submittal written to: {args.output}")
    else:
        print(builder.format_text())


def _print_summary(results):
    statuses = [r.schedule_item.match_status for r in results]
    print("\n" + "=" * 60)
    print("MATCHING COMPLETE")
    print("=" * 60)
    print(f"Total items: {len(results)}")
    print(f"On line card: {sum(1 for r in results if r.schedule_item.on_line_card)}")
    print(f"With proposals: {statuses.count(MatchStatus.MATCHED)}")
    print(f"No match: {statuses.count(MatchStatus.NO_MATCH)}")


def run_stats(args):
    """Show catalog statistics."""
    catalog = ProductCatalog()
    catalog.load_file(args.catalog)
    stats = catalog.get_statistics()

    print("=" * 60)
    print("CATALOG STATISTICS")
    print("=" * 60)

    print(f"\nTotal Products: {stats['total_products']}")
    print(f"Manufacturers: {stats['total_manufacturers']}")
    print(f"Discontinued: {stats['discontinued']}")

    print(f"\nProducts per Manufacturer:")
    for name, count in sorted(stats['by_manufacturer'].items(),
                              key=lambda x: x[1], reverse=True):
        print(f"  {name}: {count}")

    print(f"\nMounting Types:")
    for mounting, count in sorted(stats['mounting_types'].items(),
                                  key=lambda x: x[1], reverse=True):
        print(f"  {mounting}: {count}")


if __name__ == '__main__':
    main()
