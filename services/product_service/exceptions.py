class ProductError(Exception):
    """Base class for catalogue errors."""


class ProductNotFound(ProductError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class ProductInUse(ProductError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is referenced by existing orders")


class ImageNotFound(ProductError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product {product_id} has no image")
