"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; point them at the test environment first
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from datetime import datetime, timedelta, timezone
from fnmatch import fnmatch
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shopsearch.db.seed import build_product
from shopsearch.models import Base, Category, Product
from shopsearch.search.documents import CategoryPath, ColorVariant, SearchableProduct, SizeVariant


class FrozenClock:
    """Controllable clock for analytics tests."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


def make_searchable(
    name: str = "Product",
    levels: tuple = (),
    **fields,
) -> SearchableProduct:
    """Build an in-memory product snapshot for pure search tests."""
    colors = fields.pop("colors", ())
    return SearchableProduct(
        id=fields.pop("id", name.lower().replace(" ", "-")),
        name=name,
        category=CategoryPath.from_levels(*levels),
        color_variants=tuple(
            ColorVariant(color_name=c, size_variants=(SizeVariant(size="M", stock=1),))
            for c in colors
        ),
        **fields,
    )


@pytest.fixture
def searchable():
    """Factory for in-memory product snapshots."""
    return make_searchable


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest_asyncio.fixture
async def add_product(test_db: AsyncSession):
    """Factory inserting a product; takes the same keys as the seed catalog."""

    async def _add(name: str, levels: tuple, **data) -> Product:
        data.setdefault("brand", "Generic")
        data.setdefault("price", "10.00")
        product = build_product({"name": name, "levels": levels, **data})
        test_db.add(product)
        await test_db.commit()
        return product

    return _add


@pytest_asyncio.fixture
async def catalog(add_product):
    """A small catalog covering the category / product-type combinations."""
    return {
        "mens_shirt": await add_product(
            "Classic Oxford Shirt",
            ("Men", "Shirts", "Formal Shirts"),
            brand="Arrow",
            price="40.00",
            colors=[("Blue", "#0000FF", {"M": 5})],
            rating=(4.5, 10),
            views=500,
            sales=50,
        ),
        "mens_tshirt": await add_product(
            "Graphic Crew Tee",
            ("Men", "T-Shirts"),
            brand="Urban",
            price="20.00",
            colors=[("Black", "#000000", {"L": 3})],
            rating=(4.0, 8),
            views=300,
        ),
        "mens_jeans": await add_product(
            "Slim Jeans",
            ("Men", "Jeans"),
            brand="Denimco",
            price="60.00",
            colors=[("Indigo", "#4B0082", {"32": 2})],
        ),
        "womens_shirt": await add_product(
            "Silk Blouse Shirt",
            ("Women", "Shirts"),
            brand="Bloom",
            price="55.00",
            colors=[("Red", "#FF0000", {"S": 1})],
            rating=(4.8, 20),
        ),
        "phone": await add_product(
            "Nova Smartphone 128GB",
            ("Electronics", "Phones", "Smartphones"),
            brand="Nova",
            price="699.00",
            description="Unlocked mobile phone",
            colors=[("Graphite", "#333333", {"128GB": 0})],
            views=9000,
            sales=900,
        ),
        "inactive_shirt": await add_product(
            "Discontinued Shirt",
            ("Men", "Shirts"),
            status="archived",
        ),
    }


@pytest_asyncio.fixture
async def categories(test_db: AsyncSession):
    men = Category(name="Men", slug="men", sort_order=1, product_count=4)
    men.children = [
        Category(name="Shirts", slug="men-shirts", sort_order=1, product_count=2),
        Category(name="Jeans", slug="men-jeans", sort_order=2, product_count=1),
    ]
    electronics = Category(name="Electronics", slug="electronics", sort_order=2, product_count=9)
    electronics.children = [Category(name="Phones", slug="electronics-phones", sort_order=1)]
    test_db.add_all([men, electronics])
    await test_db.commit()
    return {"men": men, "electronics": electronics}


class FakeCache:
    """In-memory stand-in for CacheService."""

    def __init__(self):
        self.store = {}
        self.deleted_patterns = []

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ttl=None):
        self.store[key] = value
        return True

    async def delete_pattern(self, pattern):
        self.deleted_patterns.append(pattern)
        keys = [k for k in self.store if fnmatch(k, pattern)]
        for key in keys:
            del self.store[key]
        return len(keys)

    async def health_check(self):
        return True

    async def close(self):
        pass


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()
