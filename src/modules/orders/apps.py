from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.core.events import event_bus
        from modules.orders import handlers
        from modules.orders.events import (
            OrderCancelled,
            OrderCreated,
            OrderStatusChanged,
        )

        event_bus.subscribe(OrderCreated, handlers.order_created_handler)
        event_bus.subscribe(OrderCancelled, handlers.order_cancelled_handler)
        event_bus.subscribe(OrderStatusChanged, handlers.order_status_changed_handler)
