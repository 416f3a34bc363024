"""address-mapper: enrich address spreadsheets with company mappings."""

__version__ = "0.3.0"
