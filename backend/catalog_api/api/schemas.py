# backend/catalog_api/api/schemas.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from catalog_api.models.order import OrderStatus

SKU_REGEX = r"^[A-Z]{3}\d{3}$"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------- categories / suppliers ----------


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class Category(ORMModel):
    id: int
    name: str
    description: Optional[str] = None


class SupplierIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)


class Supplier(ORMModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


# ---------- products ----------


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    price: Decimal = Field(..., gt=0, decimal_places=2)
    stock: int = Field(0, ge=0)
    sku: Optional[str] = Field(None, pattern=SKU_REGEX)
    category_id: Optional[int] = None
    supplier_id: Optional[int] = None


class ProductUpdate(ProductIn):
    # full replace: stock has no default
    stock: int = Field(..., ge=0)


class ProductWithCategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    price: Decimal = Field(..., gt=0, decimal_places=2)
    stock: int = Field(0, ge=0)
    sku: Optional[str] = Field(None, pattern=SKU_REGEX)
    category_name: str = Field(..., min_length=1, max_length=100)
    supplier_id: Optional[int] = None


class StockUpdate(BaseModel):
    # signed for /stock, must be > 0 for /stock/decrease
    quantity: int


class TransferIn(BaseModel):
    from_category_id: int
    to_category_id: int


class TransferOut(BaseModel):
    moved: int


class ProductBrief(ORMModel):
    id: int
    sku: Optional[str] = None
    name: str
    price: Decimal
    stock: int
    category_id: int
    supplier_id: Optional[int] = None


class Product(ORMModel):
    id: int
    sku: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int
    category: Category
    supplier: Optional[Supplier] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryWithProducts(Category):
    products: List[ProductBrief] = []


class ProductPage(ORMModel):
    content: List[Product]
    page: int
    size: int
    number_of_elements: int
    total_elements: int
    total_pages: int


# ---------- orders ----------


class OrderIn(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: Optional[EmailStr] = None
    # product id -> quantity
    items: dict[int, int] = Field(..., min_length=1)


class OrderStatusIn(BaseModel):
    status: OrderStatus


class OrderItem(ORMModel):
    id: int
    product: Product
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class OrderSummary(ORMModel):
    id: int
    order_number: str
    customer_name: str
    customer_email: Optional[str] = None
    status: OrderStatus
    total_amount: Decimal
    order_date: datetime


class Order(OrderSummary):
    items: List[OrderItem] = []


# ---------- stats ----------


class Count(BaseModel):
    count: int


class CategoryCount(ORMModel):
    category_name: str
    product_count: int


class CategoryAveragePrice(ORMModel):
    category_name: str
    average_price: Decimal


class CategoryStats(ORMModel):
    category_name: str
    product_count: int
    average_price: Decimal


class StatusCount(ORMModel):
    status: OrderStatus
    order_count: int


class ProductQuantity(ORMModel):
    product_id: int
    product_name: str
    total_quantity: int


class Revenue(BaseModel):
    status: OrderStatus = OrderStatus.DELIVERED
    total_revenue: Decimal
