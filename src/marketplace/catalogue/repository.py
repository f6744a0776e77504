"""Product catalogue queries."""

from protean.exceptions import ObjectNotFoundError

from marketplace.catalogue.collections import Collection, find_collection
from marketplace.catalogue.product import Product
from marketplace.domain import marketplace


@marketplace.repository(part_of=Product)
class ProductRepository:
    """Read access to the catalogue.

    ``find_product`` is the lookup the checkout flow uses; it returns ``None``
    rather than raising so callers can report the missing id themselves.
    """

    def find_product(self, product_id: str) -> Product | None:
        try:
            return self.get(product_id)
        except ObjectNotFoundError:
            return None

    def list_products(self, category: str | None = None, limit: int = 50, offset: int = 0) -> tuple[list[Product], int]:
        """Products newest first, optionally restricted to a category."""
        query = self._dao.query
        if category:
            query = query.filter(category=category)
        products = sorted(query.limit(None).all().items, key=lambda p: p.created_at, reverse=True)
        return products[offset : offset + limit], len(products)

    def find_featured(self, limit: int = 8) -> list[Product]:
        """The newest products, shown on the storefront landing page."""
        products, _ = self.list_products(limit=limit)
        return products

    def find_by_collection(self, slug: str, limit: int = 100) -> tuple[Collection, list[Product]]:
        """A collection and the products filed under its category.

        Raises ``ObjectNotFoundError`` for an unknown slug.
        """
        collection = find_collection(slug)
        if collection is None:
            raise ObjectNotFoundError(f"Collection not found: {slug}")
        products, _ = self.list_products(category=collection.category, limit=limit)
        return collection, products

    def search(self, query: str, limit: int = 20) -> list[Product]:
        """Case-insensitive substring match on name, description and brand."""
        needle = (query or "").strip().lower()
        if not needle:
            return []

        matches = []
        for product in sorted(self._dao.query.limit(None).all().items, key=lambda p: p.name.lower()):
            haystack = " ".join(filter(None, [product.name, product.description, product.brand])).lower()
            if needle in haystack:
                matches.append(product)
            if len(matches) >= limit:
                break
        return matches
