"""
Product Catalog loader and agency Line Card.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from .column_mapper import clean_string, parse_numeric
from .models import Manufacturer, Product, RawTable
from .table_parser import parse_table

logger = logging.getLogger(__name__)

# Columns of the catalog import template
TEMPLATE_COLUMNS = (
    'manufacturer',
    'model_number',
    'category',
    'form_factor',
    'lumens',
    'cct',
    'wattage',
    'voltage',
    'mounting_type',
    'cri',
    'dimming_protocol',
    'description',
    'discontinued',
)


class CatalogError(ValueError):
    """A catalog file has nothing that can be imported."""


@dataclass
class ImportSummary:
    products_imported: int = 0
    manufacturers_seen: int = 0
    manufacturers_created: int = 0
    rows_skipped: int = 0

    def __str__(self) -> str:
        text = (f"Imported {self.products_imported} products across "
                f"{self.manufacturers_seen} manufacturers")
        if self.manufacturers_created:
            return text + f" ({self.manufacturers_created} new manufacturers created)."
        return text + "."


class ProductCatalog:
    """
    Holds manufacturers and their products, keyed case-insensitively
    by manufacturer name.
    """

    def __init__(self):
        self.products: List[Product] = []
        self._manufacturers: Dict[str, Manufacturer] = {}
        self._by_manufacturer: Dict[str, List[Product]] = defaultdict(list)

    @property
    def manufacturers(self) -> List[Manufacturer]:
        return sorted(self._manufacturers.values(), key=lambda m: m.name.lower())

    def add_manufacturer(self, name: str, website: Optional[str] = None) -> Manufacturer:
        """Return the manufacturer with this name, creating it if needed."""
        key = name.strip().lower()
        if not key:
            raise ValueError("Manufacturer name is empty")
        if key not in self._manufacturers:
            self._manufacturers[key] = Manufacturer(name=name.strip(), website=website)
        return self._manufacturers[key]

    def get_manufacturer(self, name: str) -> Optional[Manufacturer]:
        return self._manufacturers.get(name.strip().lower())

    def add_product(self, product: Product) -> Product:
        manufacturer = self.add_manufacturer(product.manufacturer.name)
        product.manufacturer = manufacturer
        self.products.append(product)
        self._by_manufacturer[manufacturer.name.lower()].append(product)
        return product

    def load_file(self, filepath: Union[str, Path]) -> ImportSummary:
        """
        Import products from a CSV or Excel file laid out like the template.
        Manufacturers that don't exist yet are created.
        """
        return self.load_table(parse_table(filepath))

    def load_table(self, table: RawTable) -> ImportSummary:
        """Import products from an already parsed table."""
        # Template headers are matched regardless of case and padding
        header_keys = {}
        for header in table.headers:
            header_keys.setdefault(header.strip().lower(), header)

        rows = [
            {column: row.get(header_keys[column], '') if column in header_keys else ''
             for column in TEMPLATE_COLUMNS}
            for row in table.rows
        ]

        names = []
        for row in rows:
            name = row['manufacturer'].strip()
            if name and name.lower() not in {n.lower() for n in names}:
                names.append(name)

        if not names:
            raise CatalogError(
                "No manufacturer names found. Ensure the file has a 'manufacturer' column."
            )

        summary = ImportSummary(manufacturers_seen=len(names))
        summary.manufacturers_created = sum(
            1 for name in names if self.get_manufacturer(name) is None
        )

        new_products = []
        for row_num, row in enumerate(rows, start=2):
            product = self._parse_product_row(row)
            if product is None:
                logger.debug("Skipping catalog row %d: missing manufacturer or model number", row_num)
                summary.rows_skipped += 1
                continue
            new_products.append(product)

        if not new_products:
            raise CatalogError(
                "No valid product rows found. Check that 'manufacturer' and "
                "'model_number' columns have data."
            )

        for product in new_products:
            self.add_product(product)

        summary.products_imported = len(new_products)
        logger.info("%s", summary)
        return summary

    def _parse_product_row(self, row: Dict[str, str]) -> Optional[Product]:
        """Parse a template row into a Product, or None if it is incomplete."""
        manufacturer_name = clean_string(row['manufacturer'])
        model_number = clean_string(row['model_number'])
        if not manufacturer_name or not model_number:
            return None

        return Product(
            manufacturer=Manufacturer(name=manufacturer_name),
            model_number=model_number,
            category=clean_string(row['category']),
            form_factor=clean_string(row['form_factor']),
            lumens=parse_numeric(row['lumens']),
            cct=parse_numeric(row['cct']),
            wattage=parse_numeric(row['wattage']),
            voltage=clean_string(row['voltage']),
            mounting_type=clean_string(row['mounting_type']),
            cri=parse_numeric(row['cri']),
            dimming_protocol=clean_string(row['dimming_protocol']),
            description=clean_string(row['description']),
            discontinued=row['discontinued'].strip().lower() == 'true',
        )

    def get_by_manufacturer(self, name: str) -> List[Product]:
        return list(self._by_manufacturer.get(name.strip().lower(), []))

    def products_for(self, manufacturer_names: Iterable[str],
                     include_discontinued: bool = False) -> List[Product]:
        """All products of the given manufacturers, in import order."""
        wanted = {name.strip().lower() for name in manufacturer_names}
        return [
            product for product in self.products
            if product.manufacturer.name.lower() in wanted
            and (include_discontinued or not product.discontinued)
        ]

    def get_statistics(self) -> Dict:
        """Get catalog statistics."""
        by_manufacturer = defaultdict(int)
        mounting_types = defaultdict(int)
        discontinued = 0

        for product in self.products:
            by_manufacturer[product.manufacturer.name] += 1
            if product.mounting_type:
                mounting_types[product.mounting_type] += 1
            if product.discontinued:
                discontinued += 1

        return {
            'total_products': len(self.products),
            'total_manufacturers': len(self._manufacturers),
            'discontinued': discontinued,
            'by_manufacturer': dict(by_manufacturer),
            'mounting_types': dict(mounting_types),
        }


class LineCard:
    """
    The manufacturers an agency is authorized to represent.
    Passed explicitly to the engine; names compare case-insensitively.
    """

    def __init__(self, agency_name: str = "My Agency",
                 manufacturers: Optional[Iterable[str]] = None):
        self.agency_name = agency_name
        self._names: Dict[str, str] = {}
        for name in manufacturers or []:
            self.add(name)

    def add(self, name: str):
        name = name.strip()
        if name:
            self._names.setdefault(name.lower(), name)

    def remove(self, name: str):
        self._names.pop(name.strip().lower(), None)

    def covers(self, name: Optional[str]) -> bool:
        """True if the named manufacturer is represented by the agency."""
        if not name:
            return False
        return name.strip().lower() in self._names

    @property
    def manufacturers(self) -> Set[str]:
        return set(self._names.values())

    def __len__(self) -> int:
        return len(self._names)

    @classmethod
    def load_file(cls, filepath: Union[str, Path],
                  agency_name: str = "My Agency") -> 'LineCard':
        """Read one manufacturer name per line; '#' starts a comment."""
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Line card file not found: {filepath}")

        names = []
        with open(filepath, 'r', encoding='utf-8') as f:
            for line in f:
                name = line.split('#', 1)[0].strip()
                if name:
                    names.append(name)

        return cls(agency_name, names)
