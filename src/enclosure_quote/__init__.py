"""
Enclosure Quote Package

Quoting tool for pool and terrace roof enclosures.
Prices a roof configuration from tiered base prices plus a surcharge catalog,
stores the quote and renders it to PDF.
"""

__version__ = "1.0.0"
