"""Shared fixtures: a fresh SQLite database per test, seeded users and products."""
import os

os.environ["DATABASE_URL"] = "sqlite://"

from decimal import Decimal

import pytest
from jose import jwt
from sqlalchemy.orm import sessionmaker

from storefront import models
from storefront.config import ALGORITHM, SECRET_KEY
from storefront.database import Base, create_db_engine


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(username, role=models.UserRole.CUSTOMER.value, is_active=True):
        user = models.User(
            username=username,
            email=f"{username}@example.com",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_product(db):
    def _make(name, price, stock=None, minimum_stock=5, is_active=True, category_id=None):
        product = models.Product(name=name, price=Decimal(price), is_active=is_active, category_id=category_id)
        db.add(product)
        db.commit()
        if stock is not None:
            db.add(models.Inventory(product_id=product.id, stock_quantity=stock, minimum_stock=minimum_stock))
            db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture
def customer(make_user):
    return make_user("alice")


@pytest.fixture
def owner(make_user):
    return make_user("owner", role=models.UserRole.STORE_OWNER.value)


@pytest.fixture
def support_agent(make_user):
    return make_user("agent", role=models.UserRole.CUSTOMER_SERVICE.value)


@pytest.fixture
def stock_of(db):
    """Read the committed stock quantity of a product."""
    def _stock(product_id):
        db.expire_all()
        record = db.query(models.Inventory).filter(models.Inventory.product_id == product_id).first()
        return record.stock_quantity if record is not None else None
    return _stock


@pytest.fixture
def token_for():
    def _token(user):
        claims = {"sub": str(user.id), "email": user.email, "role": user.role}
        return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    return _token
