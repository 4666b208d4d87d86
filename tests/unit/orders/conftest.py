import pytest

from modules.orders.dtos import CreateOrderDTO


@pytest.fixture()
def checkout_dto(user):
    return CreateOrderDTO(
        user_id=user.id,
        shipping_address="221B Baker Street, London",
        contact_phone="+44 20 7946 0000",
    )


@pytest.fixture()
def place_order(carts, orders, checkout_dto):
    """Fill the buyer's cart with ``{product: quantity}`` and check out."""

    def _place(items):
        for product, quantity in items.items():
            carts.add_or_update(checkout_dto.user_id, str(product.id), quantity)
        return orders.create_from_cart(checkout_dto)

    return _place
