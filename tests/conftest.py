from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from modules.catalog.models import Category, Product, Subcategory
from modules.core.container import (
    cart_service,
    catalog_manager,
    order_service,
    stock_ledger,
)

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def user():
    return User.objects.create_user(username="buyer", password="testpass123")


@pytest.fixture()
def other_user():
    return User.objects.create_user(username="other-buyer", password="testpass123")


@pytest.fixture()
def category():
    return Category.objects.create(name="Electronics")


@pytest.fixture()
def subcategory(category):
    return Subcategory.objects.create(category=category, name="Accessories")


@pytest.fixture()
def make_product(category, subcategory):
    """Factory for products under the default category/subcategory."""

    def _make(name="Wireless Mouse", price="10.00", stock=10, **extra):
        extra.setdefault("category", category)
        extra.setdefault("subcategory", subcategory)
        return Product.objects.create(
            name=name, price=Decimal(price), stock=stock, **extra
        )

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def ledger():
    return stock_ledger()


@pytest.fixture()
def manager():
    return catalog_manager()


@pytest.fixture()
def carts():
    return cart_service()


@pytest.fixture()
def orders():
    return order_service()
