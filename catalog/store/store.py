"""
In-memory catalog store.

The product set is built once at startup and never mutated, so concurrent
readers need no locking.
"""
from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from models import Product

SEED_PRODUCTS: tuple[Product, ...] = (
    Product(
        id=1,
        name="Fish Without Hate",
        author="HACHIRO PERALEZ",
        description="A book about fish and people that hates fish, but not the other way around.",
        price=Decimal("15"),
    ),
    Product(
        id=2,
        name="Wife Of The North",
        author="LAURENCE COLON",
        description="The main story is about the wife of the famous man called the North.",
        price=Decimal("666"),
    ),
    Product(
        id=3,
        name="Men Of The East",
        author="KRIS CHAMBERS",
        description="Kris Chambers describes his life in this biography.",
        price=Decimal("4.99"),
    ),
    Product(
        id=4,
        name="Women Of Tomorrow",
        author="JOE ATKINSON",
        description=(
            "Women of tomorrow is the story about empowering the ongoing feminism "
            "movement in a modern perspective."
        ),
        price=Decimal("14.99"),
    ),
    Product(
        id=5,
        name="Turtles And Spiders",
        author="TYLER MITCHELL",
        description="What does turtles and spiders in common? Read this book and you will be surprised.",
        price=Decimal("39"),
    ),
)


class CatalogStore:
    """Answers "all" and "by id" queries over a fixed product collection."""

    def __init__(self, products: Iterable[Product] = SEED_PRODUCTS) -> None:
        self._products: tuple[Product, ...] = tuple(products)
        seen: set[int] = set()
        for product in self._products:
            if product.id in seen:
                raise ValueError(f"Duplicate product id: {product.id}")
            seen.add(product.id)

    def list_all(self) -> tuple[Product, ...]:
        return self._products

    def get_by_id(self, product_id: int) -> Product | None:
        """Return the product with `product_id`, or None when absent."""
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def __len__(self) -> int:
        return len(self._products)
