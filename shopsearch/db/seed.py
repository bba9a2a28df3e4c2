"""Database seeding for development.

Populates an empty database with a small category tree and catalog so the
search endpoints have something to find.
Run with: python -m shopsearch.db.seed
"""

import asyncio
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shopsearch.db.session import async_session_factory
from shopsearch.models import Category, Product

logger = structlog.get_logger(__name__)

# name -> subcategory names
CATEGORY_TREE = {
    "Men": ["Shirts", "T-Shirts", "Jeans", "Shoes"],
    "Women": ["Dresses", "Tops", "Shoes", "Handbags"],
    "Kids": ["Shirts", "Shoes"],
    "Electronics": ["Phones", "Laptops", "Watches"],
}

PRODUCTS = [
    {
        "name": "Classic Oxford Shirt",
        "brand": "Arrow",
        "levels": ("Men", "Shirts", "Formal Shirts", "Oxford", "Slim Fit"),
        "price": "39.99",
        "tags": ["cotton", "office"],
        "colors": [("Light Blue", "#ADD8E6", {"M": 10, "L": 4})],
        "rating": (4.5, 120),
        "views": 2400,
        "sales": 310,
    },
    {
        "name": "Graphic Crew T-Shirt",
        "brand": "Urban Threads",
        "levels": ("Men", "T-Shirts", "Graphic Tees"),
        "price": "19.99",
        "tags": ["casual", "summer"],
        "colors": [("Black", "#000000", {"M": 25, "XL": 8})],
        "rating": (4.1, 64),
        "views": 1800,
        "sales": 420,
    },
    {
        "name": "Floral Wrap Dress",
        "brand": "Bloom",
        "levels": ("Women", "Dresses", "Wrap Dresses", "Midi"),
        "price": "59.00",
        "tags": ["floral", "summer"],
        "colors": [("Red", "#FF0000", {"S": 6, "M": 3})],
        "rating": (4.7, 88),
        "views": 3100,
        "sales": 205,
    },
    {
        "name": "Leather Running Shoes",
        "brand": "Stride",
        "levels": ("Women", "Shoes", "Running Shoes"),
        "price": "89.50",
        "tags": ["sport", "running"],
        "colors": [("White", "#FFFFFF", {"7": 5, "8": 0})],
        "rating": (4.3, 51),
        "views": 1500,
        "sales": 98,
    },
    {
        "name": "Kids Denim Shirt",
        "brand": "Little Co",
        "levels": ("Kids", "Shirts", "Denim Shirts"),
        "price": "24.00",
        "tags": ["denim"],
        "colors": [("Blue", "#0000FF", {"6Y": 12})],
        "rating": (3.9, 17),
        "views": 640,
        "sales": 45,
    },
    {
        "name": "Galaxy Smartphone 128GB",
        "brand": "Nova",
        "levels": ("Electronics", "Phones", "Smartphones"),
        "price": "699.00",
        "description": "Unlocked mobile phone with a 6.5 inch display.",
        "tags": ["android", "5g"],
        "colors": [("Graphite", "#383428", {"128GB": 30})],
        "rating": (4.6, 410),
        "views": 9800,
        "sales": 1250,
    },
]


def build_product(data: dict) -> Product:
    """Create a Product with its category structure and stock derived."""
    levels = list(data["levels"]) + [None] * (5 - len(data["levels"]))
    product = Product(
        name=data["name"],
        description=data.get("description"),
        brand=data["brand"],
        tags=data.get("tags", []),
        category_main=levels[0],
        category_sub=levels[1],
        category_type=levels[2],
        category_variant=levels[3],
        category_style=levels[4],
        color_variants=[
            {
                "colorName": name,
                "colorCode": code,
                "sizeVariants": [{"size": size, "stock": stock} for size, stock in sizes.items()],
            }
            for name, code, sizes in data.get("colors", [])
        ],
        price=Decimal(data["price"]),
        rating_average=data.get("rating", (0.0, 0))[0],
        rating_count=data.get("rating", (0.0, 0))[1],
        view_count=data.get("views", 0),
        sales_count=data.get("sales", 0),
        status=data.get("status", "active"),
    )
    product.build_category_structure()
    product.calculate_stock()
    return product


async def seed_categories(db: AsyncSession) -> int:
    """Insert the category tree, skipping slugs that already exist."""
    existing = set((await db.execute(select(Category.slug))).scalars().all())
    created = 0

    for order, (name, children) in enumerate(CATEGORY_TREE.items(), start=1):
        slug = name.lower()
        if slug in existing:
            continue
        parent = Category(name=name, slug=slug, sort_order=order)
        parent.children = [
            Category(name=child, slug=f"{slug}-{child.lower()}", sort_order=i)
            for i, child in enumerate(children, start=1)
        ]
        db.add(parent)
        created += 1 + len(children)

    return created


async def seed_products(db: AsyncSession) -> int:
    products = [build_product(data) for data in PRODUCTS]
    db.add_all(products)
    return len(products)


async def seed_if_empty(db: AsyncSession) -> bool:
    """Seed categories and products when the catalog has no products.

    Returns:
        True if seed data was inserted
    """
    if (await db.execute(select(Product.id).limit(1))).first():
        return False

    categories = await seed_categories(db)
    products = await seed_products(db)
    await db.commit()

    logger.info("seed_data_inserted", categories=categories, products=products)
    return True


async def main():
    async with async_session_factory() as session:
        await seed_if_empty(session)


if __name__ == "__main__":
    asyncio.run(main())
