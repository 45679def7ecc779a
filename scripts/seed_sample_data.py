#!/usr/bin/env python
"""
Seed the data directory with a small sample catalog and a few quotes.

Usage:
    python scripts/seed_sample_data.py [--force]

Writes into QUOTE_TOOL_DATA_DIR (default: <project>/data).
"""
import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from quote_tool.config.settings import get_settings
from quote_tool.engine import PricingEngine
from quote_tool.engine.catalog import Product
from quote_tool.engine.models import QuoteSelection
from quote_tool.lifecycle import Quote
from quote_tool.services.catalog_service import CatalogService, CompanyProfile
from quote_tool.services.quote_service import QuoteService


SAMPLE_PRODUCTS = [
    {
        'name': 'Cloud CRM',
        'category': 'Software',
        'description': 'Customer relationship management for growing teams',
        'website_link': 'https://example.com/crm',
        'key_features': 'Pipelines, contacts, reporting',
        'setup_fee': 200,
        'pricing_plans': [
            {'id': '1', 'name': 'Starter', 'features': 'Up to 5 users', 'pricingOptions': [
                {'id': '1', 'frequency': 'Monthly', 'price': 49},
                {'id': '2', 'frequency': 'Yearly', 'price': 490},
            ]},
            {'id': '2', 'name': 'Pro', 'features': 'Unlimited users', 'pricingOptions': [
                {'id': '1', 'frequency': 'Monthly', 'price': 149},
                {'id': '2', 'frequency': 'Quarterly', 'price': 420},
                {'id': '3', 'frequency': 'Yearly', 'price': 1490},
            ]},
        ],
        'add_ons': [
            {'id': '1', 'name': 'Premium Support', 'additional_cost': 99, 'type': 'Support', 'frequency': 'Monthly'},
            {'id': '2', 'name': 'Data Migration', 'additional_cost': 500, 'type': 'Service', 'frequency': 'One-time'},
        ],
    },
    {
        'name': 'Managed Hosting',
        'category': 'Infrastructure',
        'description': 'Fully managed application hosting',
        'key_features': '99.9% uptime, daily backups',
        'setup_fee': 0,
        'pricing_plans': [
            {'id': '1', 'name': 'Standard', 'pricingOptions': [
                {'id': '1', 'frequency': 'Monthly', 'price': 300},
                {'id': '2', 'frequency': 'Yearly', 'price': 3000},
            ]},
        ],
        'add_ons': [
            {'id': '1', 'name': 'Extra Storage', 'additional_cost': 25, 'type': 'Storage'},
        ],
    },
]

SAMPLE_QUOTES = [
    {
        'client_name': 'Jordan Lee',
        'client_email': 'jordan@acme.test',
        'company_name': 'Acme Corp',
        'quote_reference': 'ACME-CRM-ROLLOUT',
        'project_timeline': 'Q3',
        'generate': True,
        'selection': {
            'productConfigurations': [
                {'productId': '1', 'planId': '2', 'frequency': 'Monthly',
                 'selectedAddons': ['1', '2'], 'includeSetupCost': True,
                 'discountType': 'percentage', 'discountValue': 10},
            ],
            'customRequirements': [
                {'name': 'Onboarding workshop', 'price': 750, 'frequency': 'One-time'},
            ],
            'discounts': [
                {'type': 'fixed', 'value': 100, 'description': 'Launch offer'},
            ],
        },
    },
    {
        'client_name': 'Sam Rivera',
        'company_name': 'Globex',
        'quote_reference': 'GLOBEX-HOSTING',
        'generate': False,
        'selection': {
            'productConfigurations': [
                {'productId': '2', 'planId': '1', 'frequency': 'Yearly', 'selectedAddons': ['1']},
            ],
        },
    },
]


def main():
    parser = argparse.ArgumentParser(description="Seed sample catalog and quotes")
    parser.add_argument('--force', action='store_true', help="Seed even if products already exist")
    args = parser.parse_args()

    settings = get_settings()
    catalog_service = CatalogService(settings.products_csv, settings.company_csv)
    quote_service = QuoteService(settings.quotes_csv, settings.counters_json)

    print("=" * 60)
    print("QUOTE TOOL SAMPLE DATA")
    print("=" * 60)
    print(f"Data directory: {settings.data_dir}")

    if catalog_service.list_products() and not args.force:
        print("\nCatalog already has products; use --force to add samples anyway.")
        return 0

    if not settings.company_csv.exists():
        catalog_service.save_company_profile(CompanyProfile())
        print("\n  ✓ Wrote default company profile")

    for data in SAMPLE_PRODUCTS:
        product = catalog_service.create_product(Product.from_dict(dict(data, id='')))
        print(f"  ✓ Product {product.id}: {product.name}")

    engine = PricingEngine(catalog_service.load_catalog())
    for data in SAMPLE_QUOTES:
        selection = QuoteSelection.from_dict(data['selection'])
        quote = Quote(
            client_name=data.get('client_name', ''),
            client_email=data.get('client_email', ''),
            company_name=data.get('company_name', ''),
            quote_reference=data.get('quote_reference', ''),
            project_timeline=data.get('project_timeline', ''),
            product_configurations=selection.product_configurations,
            custom_requirements=selection.custom_requirements,
            discounts=selection.discounts,
        )
        saved = quote_service.create_quote(quote, generate=data['generate'])
        total = engine.compute_total_breakdown(saved.selection).total
        print(f"  ✓ Quote {saved.quotation_number or saved.id} ({saved.status.value}): {total:,.2f}")

    print("\nDone.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
