"""
Bookstore catalog API.

Product metadata below doubles as the documentation title and description.
"""

__title__ = "Catalog.API"
__description__ = "Read-only catalog of books offered by the bookstore."
__version__ = "1.0.0"
