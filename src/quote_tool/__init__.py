"""
Quote Tool Package

Quote generation for a services business: a product catalog with tiered
pricing plans and add-ons, client quotes built from product selections,
custom line items and layered discounts, priced by a single shared engine.
"""

__version__ = "1.0.0"
