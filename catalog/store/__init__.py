from catalog.store.store import SEED_PRODUCTS, CatalogStore

__all__ = ["CatalogStore", "SEED_PRODUCTS"]
