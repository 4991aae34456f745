from services.product_service.exceptions import ProductNotFound


class OrderPlacementError(Exception):
    """Base class for placement failures."""


class InsufficientStock(OrderPlacementError):
    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product: {product_name} "
            f"(requested {requested}, available {available})"
        )


class ConcurrentStockUpdate(OrderPlacementError):
    def __init__(self):
        super().__init__("Stock changed concurrently, please retry the order")


class PersistenceFailure(OrderPlacementError):
    def __init__(self):
        super().__init__("Order could not be placed")


__all__ = [
    "OrderPlacementError",
    "ProductNotFound",
    "InsufficientStock",
    "ConcurrentStockUpdate",
    "PersistenceFailure",
]
