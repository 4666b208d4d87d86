"""Catalog Hierarchy Manager (Use Cases).

Owns parent/child validity of Category -> Subcategory -> Product and the
cascading activation state.  All three repositories are injected here so
no entity ever looks another one up on its own.

Business rules enforced:
- Deactivating a category deactivates all of its subcategories and
  products in the same transaction; deactivating a subcategory
  deactivates its products.  Any failure rolls the whole cascade back.
- Reactivation is never cascaded: children keep their own flag and must
  be reviewed one by one.  An entity can only be (re)activated while its
  parents are active.
- Products are created only under an active subcategory of an active
  category, and the subcategory must belong to that category.  The
  parent rows are locked for the duration of the insert so they cannot
  be deactivated mid-creation.
- Product stock is never edited here; see ``modules.inventory``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from modules.catalog.dtos import ToggleResultDTO
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
from modules.core.db import store_guard, unit_of_work

if TYPE_CHECKING:
    from modules.catalog.dtos import (
        CreateCategoryDTO,
        CreateProductDTO,
        CreateSubcategoryDTO,
        UpdateCategoryDTO,
        UpdateProductDTO,
    )
    from modules.catalog.repositories.interfaces import (
        ICategoryRepository,
        IProductRepository,
        ISubcategoryRepository,
    )
    from modules.core.storage import IFileStorage

logger = structlog.get_logger(__name__)


class CatalogHierarchyManager:
    """Application service for the catalog hierarchy.

    Receives repositories and the file-storage hook via constructor
    injection (DIP).
    """

    def __init__(
        self,
        category_repository: ICategoryRepository,
        subcategory_repository: ISubcategoryRepository,
        product_repository: IProductRepository,
        file_storage: IFileStorage,
    ) -> None:
        self._category_repo = category_repository
        self._subcategory_repo = subcategory_repository
        self._product_repo = product_repository
        self._files = file_storage

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    @unit_of_work
    def set_category_active(self, category_id: str, active: bool) -> ToggleResultDTO:
        """Toggle a category.  Deactivation cascades to the whole subtree."""
        category = self._category_repo.get_for_update(str(category_id))
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found.")

        log = logger.bind(category_id=str(category.id), active=active)
        subcategories_affected = products_affected = 0

        if category.is_active != active:
            category.is_active = active
            self._category_repo.save(category)

        if not active:
            subcategories_affected = self._subcategory_repo.deactivate_by_category(
                str(category.id)
            )
            products_affected = self._product_repo.deactivate_by_category(
                str(category.id)
            )
            log.info(
                "catalog.category_deactivated",
                subcategories_affected=subcategories_affected,
                products_affected=products_affected,
            )
        else:
            log.info("catalog.category_activated")

        return ToggleResultDTO(
            entity_id=category.id,
            is_active=category.is_active,
            subcategories_affected=subcategories_affected,
            products_affected=products_affected,
        )

    @unit_of_work
    def set_subcategory_active(
        self, subcategory_id: str, active: bool
    ) -> ToggleResultDTO:
        """Toggle a subcategory.  Deactivation cascades to its products.

        Raises:
            SubcategoryNotFound: subcategory does not exist.
            InactiveParent: activating under an inactive category.
        """
        snapshot = self._subcategory_repo.get_by_id(str(subcategory_id))
        if not snapshot:
            raise SubcategoryNotFound(f"Subcategory {subcategory_id} not found.")

        category = None
        if active:
            # Category before subcategory, same order as the cascade.
            category = self._category_repo.get_for_update(str(snapshot.category_id))
        subcategory = self._subcategory_repo.get_for_update(str(snapshot.id))
        if not subcategory:
            raise SubcategoryNotFound(f"Subcategory {subcategory_id} not found.")

        log = logger.bind(subcategory_id=str(subcategory.id), active=active)

        if active and not subcategory.is_active:
            if not category or not category.is_active:
                log.warning("catalog.activation_rejected", reason="inactive_category")
                raise InactiveParent(
                    f"Category of subcategory {subcategory.id} is inactive."
                )

        if subcategory.is_active != active:
            subcategory.is_active = active
            self._subcategory_repo.save(subcategory)

        products_affected = 0
        if not active:
            products_affected = self._product_repo.deactivate_by_subcategory(
                str(subcategory.id)
            )
            log.info(
                "catalog.subcategory_deactivated",
                products_affected=products_affected,
            )
        else:
            log.info("catalog.subcategory_activated")

        return ToggleResultDTO(
            entity_id=subcategory.id,
            is_active=subcategory.is_active,
            products_affected=products_affected,
        )

    @unit_of_work
    def set_product_active(self, product_id: str, active: bool) -> ToggleResultDTO:
        """Toggle a single product.  Activation requires active parents."""
        snapshot = self._product_repo.get_by_id(str(product_id))
        if not snapshot:
            raise ProductNotFound(f"Product {product_id} not found.")

        parents = None
        if active:
            # Parents are locked before the product, same order as the cascade.
            parents = self._lock_parents(
                str(snapshot.subcategory_id), str(snapshot.category_id)
            )

        product = self._product_repo.get_for_update(str(snapshot.id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        if parents is not None and not product.is_active:
            self._verify_parents(
                str(product.subcategory_id), str(product.category_id), *parents
            )

        if product.is_active != active:
            product.is_active = active
            self._product_repo.save(product)

        logger.info(
            "catalog.product_toggled", product_id=str(product.id), active=active
        )
        return ToggleResultDTO(entity_id=product.id, is_active=product.is_active)

    # ------------------------------------------------------------------
    # Hierarchy validation
    # ------------------------------------------------------------------

    @unit_of_work
    def validate_create_product(
        self, subcategory_id: str, category_id: str
    ) -> Tuple[Subcategory, Category]:
        """Lock and check the parents of a product about to be inserted.

        Call it from the transaction that performs the insert so the parent
        locks are held until the product row exists.

        Raises:
            SubcategoryNotFound / CategoryNotFound: a parent is missing.
            InactiveParent: a parent is inactive.
            HierarchyMismatch: the subcategory belongs to another category.
        """
        return self._check_parents_active(str(subcategory_id), str(category_id))

    def _check_parents_active(
        self, subcategory_id: str, category_id: str
    ) -> Tuple[Subcategory, Category]:
        subcategory, category = self._lock_parents(subcategory_id, category_id)
        return self._verify_parents(subcategory_id, category_id, subcategory, category)

    def _lock_parents(
        self, subcategory_id: str, category_id: str
    ) -> Tuple[Optional[Subcategory], Optional[Category]]:
        # Lock order is category -> subcategory, same as the cascade.
        category = self._category_repo.get_for_update(category_id)
        subcategory = self._subcategory_repo.get_for_update(subcategory_id)
        return subcategory, category

    @staticmethod
    def _verify_parents(
        subcategory_id: str,
        category_id: str,
        subcategory: Optional[Subcategory],
        category: Optional[Category],
    ) -> Tuple[Subcategory, Category]:
        if not subcategory:
            raise SubcategoryNotFound(f"Subcategory {subcategory_id} not found.")
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found.")
        if not subcategory.is_active:
            raise InactiveParent(f"Subcategory {subcategory_id} is inactive.")
        if not category.is_active:
            raise InactiveParent(f"Category {category_id} is inactive.")
        if subcategory.category_id != category.id:
            raise HierarchyMismatch(
                f"Subcategory {subcategory_id} does not belong to "
                f"category {category_id}."
            )
        return subcategory, category

    # ------------------------------------------------------------------
    # Categories & subcategories
    # ------------------------------------------------------------------

    @unit_of_work
    def create_category(self, dto: CreateCategoryDTO) -> Category:
        """Raises ``CategoryAlreadyExists`` when the name is taken."""
        if self._category_repo.get_by_name(dto.name):
            logger.warning("catalog.duplicate_category", name=dto.name)
            raise CategoryAlreadyExists(f"Category '{dto.name}' already exists.")

        category = Category(name=dto.name, description=dto.description)
        category = self._save_validated(self._category_repo, category)
        logger.info("catalog.category_created", category_id=str(category.id))
        return category

    @unit_of_work
    def update_category(self, category_id: str, dto: UpdateCategoryDTO) -> Category:
        category = self._category_repo.get_for_update(str(category_id))
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found.")

        if dto.name is not None and dto.name != category.name:
            if self._category_repo.get_by_name(dto.name):
                raise CategoryAlreadyExists(f"Category '{dto.name}' already exists.")
            category.name = dto.name
        if dto.description is not None:
            category.description = dto.description

        category = self._save_validated(self._category_repo, category)
        logger.info("catalog.category_updated", category_id=str(category.id))
        return category

    @unit_of_work
    def create_subcategory(self, dto: CreateSubcategoryDTO) -> Subcategory:
        category = self._category_repo.get_for_update(str(dto.category_id))
        if not category:
            raise CategoryNotFound(f"Category {dto.category_id} not found.")
        if not category.is_active:
            raise InactiveParent(f"Category {dto.category_id} is inactive.")

        subcategory = Subcategory(
            category=category, name=dto.name, description=dto.description
        )
        subcategory = self._save_validated(self._subcategory_repo, subcategory)
        logger.info(
            "catalog.subcategory_created",
            subcategory_id=str(subcategory.id),
            category_id=str(category.id),
        )
        return subcategory

    @store_guard
    def get_category(self, category_id: str) -> Category:
        category = self._category_repo.get_by_id(str(category_id))
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found.")
        return category

    @store_guard
    def list_categories(self, active: Optional[bool] = None) -> List[Category]:
        filters: Dict[str, Any] = {}
        if active is not None:
            filters["is_active"] = active
        return self._category_repo.list(filters)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @unit_of_work
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Insert a product after validating its parents in the same transaction."""
        subcategory, category = self.validate_create_product(
            str(dto.subcategory_id), str(dto.category_id)
        )

        product = Product(
            subcategory=subcategory,
            category=category,
            name=dto.name,
            description=dto.description,
            price=dto.price,
            stock=dto.stock,
            image=dto.image,
        )
        product = self._save_validated(self._product_repo, product)
        logger.info(
            "catalog.product_created",
            product_id=str(product.id),
            subcategory_id=str(subcategory.id),
            stock=product.stock,
        )
        return product

    @unit_of_work
    def update_product(self, product_id: str, dto: UpdateProductDTO) -> Product:
        """Update descriptive fields.  A replaced image is removed from storage."""
        product = self._product_repo.get_for_update(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")

        previous_image = product.image
        for field in ("name", "description", "price", "image"):
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)

        product = self._save_validated(self._product_repo, product)
        if previous_image and previous_image != product.image:
            transaction.on_commit(lambda: self._files.delete_file(previous_image))

        logger.info("catalog.product_updated", product_id=str(product.id))
        return product

    @unit_of_work
    def delete_product(self, product_id: str) -> None:
        """Permanently remove a product.

        Cart lines referencing it cascade.  Products with order history are
        protected.  The image, if any, is handed to the file-storage hook
        once the delete has committed.
        """
        product = self._product_repo.get_for_update(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        if self._product_repo.has_order_history(str(product.id)):
            raise InvalidCatalogData(
                f"Product {product_id} has order history and cannot be deleted."
            )

        image = product.image
        self._product_repo.delete(str(product.id))
        logger.info("catalog.product_deleted", product_id=str(product_id))

        if image:
            transaction.on_commit(lambda: self._remove_image(str(product_id), image))

    def _remove_image(self, product_id: str, image: str) -> bool:
        removed = self._files.delete_file(image)
        logger.info(
            "catalog.product_image_removed",
            product_id=product_id,
            image=image,
            removed=removed,
        )
        return removed

    @store_guard
    def get_product(self, product_id: str) -> Product:
        product = self._product_repo.get_by_id(str(product_id))
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        return product

    @store_guard
    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        return self._product_repo.list(filters)

    # ------------------------------------------------------------------
    # Counting helpers
    # ------------------------------------------------------------------

    @store_guard
    def count_subcategories(self, category_id: str) -> int:
        return self._subcategory_repo.count_by_category(str(category_id))

    @store_guard
    def count_products(
        self,
        *,
        category_id: Optional[str] = None,
        subcategory_id: Optional[str] = None,
    ) -> int:
        """Count products under exactly one of a category or a subcategory."""
        if (category_id is None) == (subcategory_id is None):
            raise ValueError("Pass exactly one of category_id or subcategory_id.")
        if category_id is not None:
            return self._product_repo.count_by_category(str(category_id))
        return self._product_repo.count_by_subcategory(str(subcategory_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _save_validated(repo: Any, entity: Any) -> Any:
        try:
            entity.full_clean(validate_unique=False)
            with transaction.atomic():
                return repo.save(entity)
        except ValidationError as exc:
            raise InvalidCatalogData(str(exc.message_dict)) from exc
        except IntegrityError as exc:
            raise InvalidCatalogData(str(exc)) from exc
