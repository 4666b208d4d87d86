from __future__ import annotations

import re
from decimal import Decimal

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import OrderDeletionForbidden
from modules.orders.models import Order, OrderLine

pytestmark = pytest.mark.unit


@pytest.fixture()
def order(user):
    return Order.objects.create(
        user=user, shipping_address="Main St 1", contact_phone="555-0100"
    )


class TestOrder:
    def test_order_number_generated(self, order):
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

    def test_order_number_kept_on_resave(self, order):
        number = order.order_number
        order.notes = "Leave at the door"
        order.save()
        assert order.order_number == number

    def test_defaults(self, order):
        assert order.status == OrderStatus.PENDING
        assert order.total == Decimal("0.00")
        assert order.paid_at is None

    @pytest.mark.parametrize(
        "status,terminal,cancellable",
        [
            (OrderStatus.PENDING, False, True),
            (OrderStatus.PAID, False, True),
            (OrderStatus.SHIPPED, False, False),
            (OrderStatus.DELIVERED, True, False),
            (OrderStatus.CANCELLED, True, False),
        ],
    )
    def test_state_helpers(self, order, status, terminal, cancellable):
        order.status = status
        assert order.is_terminal is terminal
        assert order.is_cancellable is cancellable

    def test_can_transition_to(self, order):
        assert order.can_transition_to(OrderStatus.PAID)
        assert not order.can_transition_to(OrderStatus.SHIPPED)
        assert not order.can_transition_to(OrderStatus.DELIVERED)


class TestDeletionForbidden:
    def test_instance_delete(self, order):
        with pytest.raises(OrderDeletionForbidden):
            order.delete()
        assert Order.objects.filter(id=order.id).exists()

    def test_queryset_delete(self, order):
        with pytest.raises(OrderDeletionForbidden):
            Order.objects.filter(id=order.id).delete()
        assert Order.objects.filter(id=order.id).exists()


class TestOrderLine:
    def test_subtotal_computed_on_save(self, order, product):
        line = OrderLine.objects.create(
            order=order, product=product, quantity=3, unit_price=Decimal("7.50")
        )
        assert line.subtotal == Decimal("22.50")

    def test_product_with_order_lines_is_protected(self, order, product):
        from django.db.models import ProtectedError

        OrderLine.objects.create(
            order=order, product=product, quantity=1, unit_price=Decimal("10.00")
        )
        with pytest.raises(ProtectedError):
            product.delete()
