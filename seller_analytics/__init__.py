"""
Seller Analytics

Period-based financial reporting and operational-expense attribution for
marketplace sellers.
"""

__version__ = "1.0.0"
