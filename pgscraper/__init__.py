"""Scrapes PagineGialle business listings into CSV files."""

__version__ = "0.3.0"
