"""
Catalog Service - CRUD operations for products and the company profile.

Products live in products.csv with pricing plans and add-ons stored as JSON
columns. Records are parsed into typed Products once, on read.
"""
import csv
import json
import logging
import os
import tempfile
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional

from ..engine.catalog import Catalog, Product, parse_amount, validate_product

logger = logging.getLogger(__name__)


def write_csv_atomic(path: Path, columns: list[str], rows: list[dict]):
    """Write rows to ``path`` through a temp file so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=columns)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


@dataclass
class CompanyProfile:
    """Company details printed on every quote."""
    company_name: str = "Your Company"
    company_email: str = "contact@yourcompany.com"
    phone: str = "+1 (555) 123-4567"
    address: str = "123 Business Street, Suite 100, City, State 12345"
    default_currency: str = "USD"  # label only, never converted
    default_tax_rate: float = 0.0  # shown on documents, not applied
    terms_and_conditions: str = "Standard terms and conditions apply. Payment is due within 30 days of invoice date."
    footer_message: str = "Thank you for considering our services."
    validity_days: int = 30

    @classmethod
    def columns(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_csv_row(self) -> dict:
        return {k: str(v) for k, v in asdict(self).items()}

    @classmethod
    def from_csv_row(cls, row: dict) -> 'CompanyProfile':
        defaults = cls()
        try:
            validity = int(row.get('validity_days') or defaults.validity_days)
        except ValueError:
            validity = defaults.validity_days
        return cls(
            company_name=row.get('company_name') or defaults.company_name,
            company_email=row.get('company_email') or defaults.company_email,
            phone=row.get('phone') or defaults.phone,
            address=row.get('address') or defaults.address,
            default_currency=row.get('default_currency') or defaults.default_currency,
            default_tax_rate=parse_amount(row.get('default_tax_rate')),
            terms_and_conditions=row.get('terms_and_conditions') or defaults.terms_and_conditions,
            footer_message=row.get('footer_message') or defaults.footer_message,
            validity_days=validity,
        )


class CatalogService:
    """Service for managing the product catalog and company profile."""

    CSV_COLUMNS = [
        'id', 'name', 'category', 'description', 'website_link',
        'key_features', 'setup_fee', 'pricing_plans', 'custom_elements',
    ]

    def __init__(self, products_csv_path: Path, company_csv_path: Path):
        self.products_csv_path = Path(products_csv_path)
        self.company_csv_path = Path(company_csv_path)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self, category: Optional[str] = None, search: Optional[str] = None) -> list[Product]:
        """List products from CSV, optionally filtered by category or name/description text."""
        products = []
        if not self.products_csv_path.exists():
            return products

        with open(self.products_csv_path, 'r', encoding='utf-8', newline='') as f:
            reader = csv.DictReader(f)
            for row in reader:
                if not row.get('id'):
                    continue
                products.append(self._from_csv_row(row))

        if category:
            products = [p for p in products if (p.category or "Uncategorized") == category]
        if search:
            needle = search.lower()
            products = [p for p in products
                        if needle in p.name.lower() or needle in p.description.lower()]
        return products

    def load_catalog(self) -> Catalog:
        """Snapshot of the live catalog for the pricing engine."""
        return Catalog(self.list_products())

    def get_product(self, product_id: str) -> Optional[Product]:
        for product in self.list_products():
            if product.id == str(product_id):
                return product
        return None

    def create_product(self, product: Product) -> Product:
        """Create a product with the next sequential id."""
        errors = validate_product(product)
        if errors:
            raise ValueError("; ".join(errors))

        products = self.list_products()
        product.id = self._next_id(products)
        products.append(product)
        self._write_products(products)
        logger.info("Created product %s (%s)", product.id, product.name)
        return product

    def update_product(self, product_id: str, product: Product) -> Product:
        """Replace an existing product; quotes are re-priced against it from now on."""
        errors = validate_product(product)
        if errors:
            raise ValueError("; ".join(errors))

        products = self.list_products()
        for i, existing in enumerate(products):
            if existing.id == str(product_id):
                product.id = existing.id
                products[i] = product
                break
        else:
            raise ValueError(f"Product with ID '{product_id}' not found")

        self._write_products(products)
        logger.info("Updated product %s", product_id)
        return product

    def delete_product(self, product_id: str) -> bool:
        products = self.list_products()
        remaining = [p for p in products if p.id != str(product_id)]

        if len(remaining) == len(products):
            raise ValueError(f"Product with ID '{product_id}' not found")

        self._write_products(remaining)
        logger.info("Deleted product %s", product_id)
        return True

    def _next_id(self, products: list[Product]) -> str:
        numeric = [int(p.id) for p in products if p.id.isdigit()]
        return str(max(numeric, default=0) + 1)

    def _write_products(self, products: list[Product]):
        write_csv_atomic(self.products_csv_path, self.CSV_COLUMNS, [self._to_csv_row(p) for p in products])

    @staticmethod
    def _to_csv_row(product: Product) -> dict:
        return {
            'id': product.id,
            'name': product.name,
            'category': product.category,
            'description': product.description,
            'website_link': product.website_link,
            'key_features': product.key_features,
            'setup_fee': str(product.setup_fee),
            'pricing_plans': json.dumps([p.to_dict() for p in product.pricing_plans]),
            'custom_elements': json.dumps([a.to_dict() for a in product.add_ons]),
        }

    @staticmethod
    def _from_csv_row(row: dict) -> Product:
        data = dict(row)
        for column in ('pricing_plans', 'custom_elements'):
            try:
                value = json.loads(row.get(column) or '[]')
            except ValueError:
                logger.warning("Product %s has unreadable %s; treating as empty", row.get('id'), column)
                value = []
            data[column] = value if isinstance(value, list) else []
        return Product.from_dict(data)

    # ------------------------------------------------------------------
    # Company profile
    # ------------------------------------------------------------------

    def get_company_profile(self) -> CompanyProfile:
        if not self.company_csv_path.exists():
            return CompanyProfile()

        with open(self.company_csv_path, 'r', encoding='utf-8', newline='') as f:
            for row in csv.DictReader(f):
                return CompanyProfile.from_csv_row(row)
        return CompanyProfile()

    def save_company_profile(self, profile: CompanyProfile) -> CompanyProfile:
        write_csv_atomic(self.company_csv_path, CompanyProfile.columns(), [profile.to_csv_row()])
        logger.info("Saved company profile for %s", profile.company_name)
        return profile

    def get_stats(self) -> dict:
        """Get statistics about the catalog."""
        products = self.list_products()
        by_category = {}
        for p in products:
            category = p.category or 'Uncategorized'
            by_category[category] = by_category.get(category, 0) + 1

        return {
            'total': len(products),
            'plans': sum(len(p.pricing_plans) for p in products),
            'add_ons': sum(len(p.add_ons) for p in products),
            'by_category': by_category,
        }
