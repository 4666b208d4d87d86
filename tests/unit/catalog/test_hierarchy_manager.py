"""Unit tests for CatalogHierarchyManager.

Covers:
- Cascading deactivation (category -> subcategories -> products).
- Reactivation is never cascaded and requires active parents.
- Product creation under an active, matching hierarchy.
- Counting helpers.
- Permanent product deletion and the file-storage hook.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from django.db import OperationalError

from modules.catalog.dtos import (
    CreateCategoryDTO,
    CreateProductDTO,
    CreateSubcategoryDTO,
    UpdateCategoryDTO,
    UpdateProductDTO,
)
from modules.catalog.exceptions import (
    CategoryAlreadyExists,
    CategoryNotFound,
    HierarchyMismatch,
    InactiveParent,
    InvalidCatalogData,
    ProductNotFound,
    SubcategoryNotFound,
)
from modules.catalog.models import Category, Product, Subcategory
from modules.catalog.repositories import (
    CategoryDjangoRepository,
    ProductDjangoRepository,
    SubcategoryDjangoRepository,
)
from modules.catalog.services import CatalogHierarchyManager
from modules.core.exceptions import StoreUnavailable

pytestmark = pytest.mark.unit


@pytest.fixture()
def file_storage():
    storage = MagicMock()
    storage.delete_file.return_value = True
    return storage


@pytest.fixture()
def hooked_manager(file_storage):
    return CatalogHierarchyManager(
        category_repository=CategoryDjangoRepository(),
        subcategory_repository=SubcategoryDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        file_storage=file_storage,
    )



@pytest.fixture()
def recorder():
    """Manager whose repositories report every call to one shared mock."""
    calls = MagicMock()
    repos = {
        "categories": MagicMock(wraps=CategoryDjangoRepository()),
        "subcategories": MagicMock(wraps=SubcategoryDjangoRepository()),
        "products": MagicMock(wraps=ProductDjangoRepository()),
    }
    for name, repo in repos.items():
        calls.attach_mock(repo, name)
    recorded = CatalogHierarchyManager(
        category_repository=repos["categories"],
        subcategory_repository=repos["subcategories"],
        product_repository=repos["products"],
        file_storage=MagicMock(),
    )
    return recorded, calls


def _lock_order(calls):
    return [
        name.split(".")[0]
        for name, _args, _kwargs in calls.mock_calls
        if name.endswith("get_for_update")
    ]


@pytest.fixture()
def tree(category, subcategory, make_product):
    """Electronics -> {Accessories: 2 products, Cables: 1 product}."""
    cables = Subcategory.objects.create(category=category, name="Cables")
    return {
        "accessories": [make_product(name="Mouse"), make_product(name="Keyboard")],
        "cables": [make_product(name="USB-C cable", subcategory=cables)],
        "cables_subcategory": cables,
    }


def _reload(*entities):
    for entity in entities:
        entity.refresh_from_db()


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------


class TestSetCategoryActive:
    def test_deactivation_cascades_to_whole_subtree(self, manager, category, tree):
        result = manager.set_category_active(str(category.id), False)

        assert result.is_active is False
        assert result.subcategories_affected == 2
        assert result.products_affected == 3
        assert not Subcategory.objects.filter(category=category, is_active=True).exists()
        assert not Product.objects.filter(category=category, is_active=True).exists()

    def test_reactivation_does_not_cascade(self, manager, category, subcategory, tree):
        manager.set_category_active(str(category.id), False)

        result = manager.set_category_active(str(category.id), True)

        _reload(category, subcategory, *tree["accessories"])
        assert result.is_active is True
        assert result.subcategories_affected == 0
        assert category.is_active is True
        assert subcategory.is_active is False
        assert all(not p.is_active for p in tree["accessories"])

    def test_other_categories_untouched(self, manager, category, tree):
        other = Category.objects.create(name="Home")
        other_sub = Subcategory.objects.create(category=other, name="Decor")

        manager.set_category_active(str(category.id), False)

        _reload(other, other_sub)
        assert other.is_active is True
        assert other_sub.is_active is True

    def test_deactivating_inactive_category_is_idempotent(self, manager, category, tree):
        manager.set_category_active(str(category.id), False)
        result = manager.set_category_active(str(category.id), False)
        assert result.products_affected == 0

    def test_missing_category(self, manager):
        with pytest.raises(CategoryNotFound):
            manager.set_category_active(str(uuid4()), False)

    def test_cascade_rolls_back_on_failure(self, category, tree):
        products = MagicMock(wraps=ProductDjangoRepository())
        products.deactivate_by_category.side_effect = RuntimeError("boom")
        failing = CatalogHierarchyManager(
            category_repository=CategoryDjangoRepository(),
            subcategory_repository=SubcategoryDjangoRepository(),
            product_repository=products,
            file_storage=MagicMock(),
        )

        with pytest.raises(RuntimeError):
            failing.set_category_active(str(category.id), False)

        _reload(category)
        assert category.is_active is True
        assert Subcategory.objects.filter(category=category, is_active=True).count() == 2


class TestSetSubcategoryActive:
    def test_deactivation_cascades_to_products_only(
        self, manager, category, subcategory, tree
    ):
        result = manager.set_subcategory_active(str(subcategory.id), False)

        _reload(category, *tree["accessories"], *tree["cables"])
        assert result.products_affected == 2
        assert category.is_active is True
        assert all(not p.is_active for p in tree["accessories"])
        assert all(p.is_active for p in tree["cables"])

    def test_reactivation_under_inactive_category_rejected(
        self, manager, category, subcategory, tree
    ):
        manager.set_category_active(str(category.id), False)

        with pytest.raises(InactiveParent):
            manager.set_subcategory_active(str(subcategory.id), True)

    def test_reactivation_does_not_cascade(self, manager, subcategory, tree):
        manager.set_subcategory_active(str(subcategory.id), False)
        manager.set_subcategory_active(str(subcategory.id), True)

        _reload(subcategory, *tree["accessories"])
        assert subcategory.is_active is True
        assert all(not p.is_active for p in tree["accessories"])

    def test_missing_subcategory(self, manager):
        with pytest.raises(SubcategoryNotFound):
            manager.set_subcategory_active(str(uuid4()), True)

    def test_reactivation_locks_category_before_subcategory(
        self, manager, recorder, subcategory
    ):
        manager.set_subcategory_active(str(subcategory.id), False)
        recorded, calls = recorder

        recorded.set_subcategory_active(str(subcategory.id), True)

        assert _lock_order(calls) == ["categories", "subcategories"]


class TestSetProductActive:
    def test_deactivate_single_product(self, manager, product):
        result = manager.set_product_active(str(product.id), False)
        product.refresh_from_db()
        assert result.is_active is False
        assert product.is_active is False

    def test_reactivation_requires_active_parents(self, manager, subcategory, product):
        manager.set_subcategory_active(str(subcategory.id), False)

        with pytest.raises(InactiveParent):
            manager.set_product_active(str(product.id), True)

    def test_reactivation_with_active_parents(self, manager, product):
        manager.set_product_active(str(product.id), False)
        result = manager.set_product_active(str(product.id), True)
        assert result.is_active is True

    def test_missing_product(self, manager):
        with pytest.raises(ProductNotFound):
            manager.set_product_active(str(uuid4()), False)

    def test_reactivation_locks_parents_before_product(
        self, manager, recorder, product
    ):
        manager.set_product_active(str(product.id), False)
        recorded, calls = recorder

        recorded.set_product_active(str(product.id), True)

        assert _lock_order(calls) == ["categories", "subcategories", "products"]

    def test_deactivation_locks_product_only(self, recorder, product):
        recorded, calls = recorder

        recorded.set_product_active(str(product.id), False)

        assert _lock_order(calls) == ["products"]


# ---------------------------------------------------------------------------
# Creation & validation
# ---------------------------------------------------------------------------


class TestValidateCreateProduct:
    def test_returns_locked_parents(self, manager, category, subcategory):
        found_sub, found_cat = manager.validate_create_product(
            str(subcategory.id), str(category.id)
        )
        assert found_sub.id == subcategory.id
        assert found_cat.id == category.id

    def test_missing_subcategory(self, manager, category):
        with pytest.raises(SubcategoryNotFound):
            manager.validate_create_product(str(uuid4()), str(category.id))

    def test_missing_category(self, manager, subcategory):
        with pytest.raises(CategoryNotFound):
            manager.validate_create_product(str(subcategory.id), str(uuid4()))

    def test_inactive_subcategory(self, manager, category, subcategory):
        manager.set_subcategory_active(str(subcategory.id), False)
        with pytest.raises(InactiveParent):
            manager.validate_create_product(str(subcategory.id), str(category.id))

    def test_inactive_category(self, manager, category, subcategory):
        manager.set_category_active(str(category.id), False)
        with pytest.raises(InactiveParent):
            manager.validate_create_product(str(subcategory.id), str(category.id))

    def test_subcategory_from_other_category(self, manager, subcategory):
        other = Category.objects.create(name="Home")
        with pytest.raises(HierarchyMismatch):
            manager.validate_create_product(str(subcategory.id), str(other.id))

    def test_locks_category_before_subcategory(self, recorder, category, subcategory):
        recorded, calls = recorder

        recorded.validate_create_product(str(subcategory.id), str(category.id))

        assert _lock_order(calls) == ["categories", "subcategories"]

    def test_driver_fault_surfaces_as_store_unavailable(
        self, manager, category, subcategory
    ):
        with patch.object(
            manager._category_repo,
            "get_for_update",
            side_effect=OperationalError("lock wait timeout"),
        ):
            with pytest.raises(StoreUnavailable):
                manager.validate_create_product(str(subcategory.id), str(category.id))


class TestCreateProduct:
    def test_creates_product_with_initial_stock(self, manager, category, subcategory):
        product = manager.create_product(
            CreateProductDTO(
                category_id=category.id,
                subcategory_id=subcategory.id,
                name="USB-C Hub",
                price=Decimal("39.90"),
                stock=7,
            )
        )
        product.refresh_from_db()
        assert product.stock == 7
        assert product.is_active is True
        assert product.category_id == category.id

    def test_rejected_under_inactive_subcategory(self, manager, category, subcategory):
        manager.set_subcategory_active(str(subcategory.id), False)
        with pytest.raises(InactiveParent):
            manager.create_product(
                CreateProductDTO(
                    category_id=category.id,
                    subcategory_id=subcategory.id,
                    name="USB-C Hub",
                    price=Decimal("39.90"),
                )
            )
        assert not Product.objects.filter(name="USB-C Hub").exists()


class TestCategoriesAndSubcategories:
    def test_create_category(self, manager):
        category = manager.create_category(CreateCategoryDTO(name="Garden"))
        assert Category.objects.filter(id=category.id, is_active=True).exists()

    def test_duplicate_category_name(self, manager, category):
        with pytest.raises(CategoryAlreadyExists):
            manager.create_category(CreateCategoryDTO(name=category.name))

    def test_update_category(self, manager, category):
        updated = manager.update_category(
            str(category.id), UpdateCategoryDTO(name="Gadgets", description="All gadgets")
        )
        assert updated.name == "Gadgets"
        assert updated.description == "All gadgets"

    def test_update_category_to_taken_name(self, manager, category):
        Category.objects.create(name="Home")
        with pytest.raises(CategoryAlreadyExists):
            manager.update_category(str(category.id), UpdateCategoryDTO(name="Home"))

    def test_create_subcategory(self, manager, category):
        subcategory = manager.create_subcategory(
            CreateSubcategoryDTO(category_id=category.id, name="Monitors")
        )
        assert subcategory.category_id == category.id

    def test_create_subcategory_under_inactive_category(self, manager, category):
        manager.set_category_active(str(category.id), False)
        with pytest.raises(InactiveParent):
            manager.create_subcategory(
                CreateSubcategoryDTO(category_id=category.id, name="Monitors")
            )

    def test_duplicate_subcategory_name(self, manager, category, subcategory):
        with pytest.raises(InvalidCatalogData):
            manager.create_subcategory(
                CreateSubcategoryDTO(category_id=category.id, name=subcategory.name)
            )

    def test_list_categories_by_active_flag(self, manager, category):
        inactive = Category.objects.create(name="Archive", is_active=False)
        assert manager.list_categories(active=True) == [category]
        assert manager.list_categories(active=False) == [inactive]
        assert len(manager.list_categories()) == 2

    def test_get_category(self, manager, category):
        assert manager.get_category(str(category.id)) == category
        with pytest.raises(CategoryNotFound):
            manager.get_category("not-a-uuid")


# ---------------------------------------------------------------------------
# Counting helpers
# ---------------------------------------------------------------------------


class TestCounts:
    def test_counts_include_inactive_children(self, manager, category, subcategory, tree):
        manager.set_category_active(str(category.id), False)

        assert manager.count_subcategories(str(category.id)) == 2
        assert manager.count_products(category_id=str(category.id)) == 3
        assert manager.count_products(subcategory_id=str(subcategory.id)) == 2

    def test_unknown_ids_count_zero(self, manager):
        assert manager.count_subcategories(str(uuid4())) == 0
        assert manager.count_products(category_id="not-a-uuid") == 0

    def test_count_products_requires_exactly_one_parent(self, manager, category, subcategory):
        with pytest.raises(ValueError):
            manager.count_products()
        with pytest.raises(ValueError):
            manager.count_products(
                category_id=str(category.id), subcategory_id=str(subcategory.id)
            )


# ---------------------------------------------------------------------------
# Update & delete
# ---------------------------------------------------------------------------


class TestUpdateProduct:
    def test_updates_descriptive_fields_only(self, manager, product):
        updated = manager.update_product(
            str(product.id), UpdateProductDTO(name="Silent Mouse", price=Decimal("12.00"))
        )
        assert updated.name == "Silent Mouse"
        assert updated.price == Decimal("12.00")
        assert updated.stock == 10

    def test_replaced_image_removed_after_commit(
        self, hooked_manager, file_storage, make_product, django_capture_on_commit_callbacks
    ):
        product = make_product(image="old.png")

        with django_capture_on_commit_callbacks(execute=True):
            hooked_manager.update_product(str(product.id), UpdateProductDTO(image="new.png"))

        file_storage.delete_file.assert_called_once_with("old.png")


class TestDeleteProduct:
    def test_deletes_product_and_calls_file_hook_on_commit(
        self, hooked_manager, file_storage, make_product, django_capture_on_commit_callbacks
    ):
        product = make_product(image="mouse.png")

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            hooked_manager.delete_product(str(product.id))
            file_storage.delete_file.assert_not_called()

        assert not Product.objects.filter(id=product.id).exists()
        assert len(callbacks) == 1
        callbacks[0]()
        file_storage.delete_file.assert_called_once_with("mouse.png")

    def test_without_image_skips_file_hook(
        self, hooked_manager, file_storage, product, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            hooked_manager.delete_product(str(product.id))

        assert callbacks == []
        file_storage.delete_file.assert_not_called()

    def test_cart_lines_cascade(self, manager, carts, user, product):
        carts.add_or_update(user.id, str(product.id), 2)

        manager.delete_product(str(product.id))

        assert not user.cart_lines.exists()

    def test_product_with_order_history_protected(
        self, manager, carts, orders, user, product
    ):
        from modules.orders.dtos import CreateOrderDTO

        carts.add_or_update(user.id, str(product.id), 1)
        orders.create_from_cart(
            CreateOrderDTO(
                user_id=user.id, shipping_address="Main St 1", contact_phone="555-0100"
            )
        )

        with pytest.raises(InvalidCatalogData):
            manager.delete_product(str(product.id))
        assert Product.objects.filter(id=product.id).exists()

    def test_missing_product(self, manager):
        with pytest.raises(ProductNotFound):
            manager.delete_product(str(uuid4()))
