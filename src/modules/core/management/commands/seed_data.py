from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.catalog.dtos import CreateCategoryDTO, CreateProductDTO, CreateSubcategoryDTO
from modules.catalog.models import Category, Product, Subcategory
from modules.core.container import cart_service, catalog_manager, order_service
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order

CATALOG = {
    "Electronics": {
        "Laptops": [("Ultrabook 14", "1299.00"), ("Gaming Laptop 16", "1899.00")],
        "Accessories": [("Wireless Mouse", "24.90"), ("USB-C Hub", "39.90")],
    },
    "Home": {
        "Kitchen": [("Chef Knife", "59.00"), ("Cast Iron Pan", "45.50")],
        "Decor": [("Table Lamp", "32.00")],
    },
}


class Command(BaseCommand):
    help = "Seed database with a development catalog, carts and orders."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        products = self._seed_catalog()
        orders_created = self._seed_orders(users, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"categories={Category.objects.count()}, "
                f"subcategories={Subcategory.objects.count()}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> list:
        User = get_user_model()
        users = []
        for username in ("ana", "bruno", "carla"):
            user, created = User.objects.get_or_create(username=username)
            if created:
                user.set_password(f"{username}123")
                user.save()
            users.append(user)
        return users

    def _seed_catalog(self) -> list[Product]:
        self.stdout.write("Creating catalog...")
        manager = catalog_manager()
        products: list[Product] = []
        for category_name, subcategories in CATALOG.items():
            category = Category.objects.filter(name=category_name).first()
            if category is None:
                category = manager.create_category(CreateCategoryDTO(name=category_name))
            for subcategory_name, items in subcategories.items():
                subcategory = Subcategory.objects.filter(
                    category=category, name=subcategory_name
                ).first()
                if subcategory is None:
                    subcategory = manager.create_subcategory(
                        CreateSubcategoryDTO(category_id=category.id, name=subcategory_name)
                    )
                for name, price in items:
                    product = Product.objects.filter(
                        subcategory=subcategory, name=name
                    ).first()
                    if product is None:
                        product = manager.create_product(
                            CreateProductDTO(
                                category_id=category.id,
                                subcategory_id=subcategory.id,
                                name=name,
                                price=Decimal(price),
                                stock=random.randint(10, 50),
                            )
                        )
                    products.append(product)
        return products

    def _seed_orders(self, users: list, products: list[Product]) -> int:
        if Order.objects.exists():
            return 0
        self.stdout.write("Creating carts and orders...")
        carts = cart_service()
        orders = order_service()
        created = 0
        for user in users:
            for product in random.sample(products, k=2):
                carts.add_or_update(user.id, str(product.id), random.randint(1, 3))
            orders.create_from_cart(
                CreateOrderDTO(
                    user_id=user.id,
                    shipping_address=f"Calle {random.randint(1, 200)}, Madrid",
                    contact_phone=f"+34 600 {random.randint(100000, 999999)}",
                )
            )
            created += 1
        return created
