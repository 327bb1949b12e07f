"""
Typed errors raised by the catalog and order services.

Every error carries a machine-readable ``code`` and the HTTP status it maps
to. The API layer turns them into JSON responses (see ``catalog_api.main``);
services never build HTTP responses themselves.

    CatalogError
    +-- ValidationError                 400
    +-- NotFoundError                   404
    |   +-- ProductNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- OrderNotFoundError
    +-- ConflictError                   409
    |   +-- DuplicateSkuError
    |   +-- DuplicateCategoryNameError
    |   +-- DuplicateSupplierEmailError
    |   +-- ProductInUseError
    +-- InsufficientStockError          422
    +-- InvalidStateTransitionError     409

Anything that is not a CatalogError is "unexpected" and is reported to the
caller as a generic 500.
"""

from typing import Any, Optional


class CatalogError(Exception):
    code: str = "CATALOG_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CatalogError):
    """Malformed or missing input, detected before any write."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


# ---------- not found ----------


class NotFoundError(CatalogError):
    code = "NOT_FOUND"
    status_code = 404
    entity: str = "Entity"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found with id: {entity_id}")


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"
    entity = "Product"


class CategoryNotFoundError(NotFoundError):
    code = "CATEGORY_NOT_FOUND"
    entity = "Category"


class SupplierNotFoundError(NotFoundError):
    code = "SUPPLIER_NOT_FOUND"
    entity = "Supplier"


class OrderNotFoundError(NotFoundError):
    code = "ORDER_NOT_FOUND"
    entity = "Order"


# ---------- conflicts ----------


class ConflictError(CatalogError):
    code = "CONFLICT"
    status_code = 409


class DuplicateSkuError(ConflictError):
    code = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"A product with SKU '{sku}' already exists")


class DuplicateCategoryNameError(ConflictError):
    code = "DUPLICATE_CATEGORY_NAME"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"A category named '{name}' already exists")


class DuplicateSupplierEmailError(ConflictError):
    code = "DUPLICATE_SUPPLIER_EMAIL"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"A supplier with email '{email}' already exists")


class ProductInUseError(ConflictError):
    code = "PRODUCT_IN_USE"

    def __init__(self, product_id: int, item_count: int):
        self.product_id = product_id
        self.item_count = item_count
        super().__init__(
            f"Product {product_id} is referenced by {item_count} order item(s) and cannot be deleted"
        )


# ---------- business rules ----------


class InsufficientStockError(CatalogError):
    code = "INSUFFICIENT_STOCK"
    status_code = 422

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for '{product_name}'. Available: {available}, requested: {requested}"
        )


class InvalidStateTransitionError(CatalogError):
    code = "INVALID_STATE_TRANSITION"
    status_code = 409

    def __init__(self, current: str, requested: str, allowed: Optional[str] = None):
        self.current = current
        self.requested = requested
        message = f"Invalid transition: {current} -> {requested}"
        if allowed:
            message += f". Allowed: {allowed}"
        super().__init__(message)
