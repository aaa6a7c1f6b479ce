"""
Shared fixtures: an in-memory SQLite database per test, a session bound to
it, small factories for products and dishes, and an API client whose
``get_db`` dependency yields sessions on the same database.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kitchen_ledger import models  # noqa: F401
from kitchen_ledger.db.database import Base, enable_sqlite_foreign_keys, get_db
from kitchen_ledger.main import app
from kitchen_ledger.models.inventory import ProductUnit
from kitchen_ledger.schemas.inventory import CompositeIngredientIn, CompositeProductCreate, ProductCreate
from kitchen_ledger.schemas.menu import DishCreate, RecipeIngredientIn
from kitchen_ledger.services import products, recipes


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_product(db):
    def _make(name="Tomato", quantity="10", unit=ProductUnit.KG, unit_price=None, par_level=None, category=None):
        result = products.create_product(
            db,
            ProductCreate(
                name=name,
                quantity=Decimal(str(quantity)),
                unit=unit,
                unit_price=Decimal(str(unit_price)) if unit_price is not None else None,
                par_level=Decimal(str(par_level)) if par_level is not None else None,
                category=category,
            ),
        )
        assert result.ok, result.error
        return result.value

    return _make


@pytest.fixture
def make_dish(db):
    def _make(name="Soup", ingredients=(), selling_price=None, is_active=True):
        result = recipes.create_dish(
            db,
            DishCreate(
                name=name,
                selling_price=Decimal(str(selling_price)) if selling_price is not None else None,
                is_active=is_active,
                recipe_ingredients=[
                    RecipeIngredientIn(product_id=product.id, quantity_required=Decimal(str(qty)), unit=product.unit)
                    for product, qty in ingredients
                ],
            ),
        )
        assert result.ok, result.error
        return result.value

    return _make


@pytest.fixture
def make_composite(db):
    def _make(name="Sauce", yield_quantity="2", ingredients=(), unit=ProductUnit.KG):
        result = products.create_composite_product(
            db,
            CompositeProductCreate(
                name=name,
                yield_quantity=Decimal(str(yield_quantity)),
                unit=unit,
                ingredients=[
                    CompositeIngredientIn(base_product_id=product.id, quantity=Decimal(str(qty)), unit=product.unit)
                    for product, qty in ingredients
                ],
            ),
        )
        assert result.ok, result.error
        return result.value

    return _make


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
