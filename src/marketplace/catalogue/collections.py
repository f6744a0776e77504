"""Storefront collections.

Collections are a fixed, curated list. Each one is addressed by a URL slug
and shows the products stored under its category.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Collection:
    slug: str
    name: str
    category: str
    description: str | None = None
    image: str | None = None
    badge: str | None = None
    features: tuple[str, ...] = ()


COLLECTIONS: tuple[Collection, ...] = (
    Collection(
        slug="men",
        name="Men",
        category="Men",
        description="Premium fits designed specifically for men. Classic essentials to modern oversized styles.",
        image="/images/collections/men.avif",
        features=("Regular & Oversized Fits", "Premium 100% Cotton", "Modern Minimalist Designs", "Durable Construction"),
    ),
    Collection(
        slug="women",
        name="Women",
        category="Women",
        description="Tailored fits designed for women. Comfortable, stylish, and sustainably made.",
        image="/images/collections/women.avif",
        features=("Fitted & Crop Styles", "Premium Soft Fabrics", "Versatile Designs", "Sustainable Materials"),
    ),
    Collection(
        slug="accessories",
        name="Accessories",
        category="Accessories",
        description="Complete your look with our curated selection. From everyday essentials to statement pieces.",
        image="/images/collections/accessories.avif",
        badge="Limited",
        features=("Functional & Stylish", "Premium Materials", "Versatile Designs", "Perfect for Gifting"),
    ),
    Collection(
        slug="exclusives",
        name="Exclusives",
        category="Exclusives",
        description="Limited edition designs created in collaboration with artists. Once they're gone, they're gone.",
        image="/images/collections/exclusives.avif",
        features=("Limited Edition Items", "Artist Collaborations", "Unique Designs", "Collectible Pieces"),
    ),
)

# Products imported from a provider's store land here
SYNCED_CATEGORY = "Exclusives"


def find_collection(slug: str) -> Collection | None:
    return next((c for c in COLLECTIONS if c.slug == slug), None)
