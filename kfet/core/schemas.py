from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# Field aliases are the persisted column names, so records travel
# through the codec (and the JSON API) in camelCase
class Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# =========================
# CATEGORY
# =========================
class CategoryBase(Record):
    name: str = Field(min_length=1)
    dept: str = Field(min_length=1)
    year: str = Field(min_length=1)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(Record):
    name: Optional[str] = None
    dept: Optional[str] = None
    year: Optional[str] = None


class Category(CategoryBase):
    id: int
    created_at: datetime
    updated_at: datetime


# =========================
# CUSTOMER
# =========================
class CustomerBase(Record):
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    account: Optional[Decimal] = None
    is_kfetier: Optional[bool] = Field(default=None, alias="isKfetier")
    category_id: Optional[int] = Field(default=None, alias="categoryId")


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(Record):
    # No account: balance changes go through adjust_balance and are audited
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    is_kfetier: Optional[bool] = Field(default=None, alias="isKfetier")
    category_id: Optional[int] = Field(default=None, alias="categoryId")


class Customer(CustomerBase):
    id: int
    created_at: datetime
    updated_at: datetime

    # Joined from the customer's category, absent on write results
    dept: Optional[str] = None
    year: Optional[str] = None
    category_name: Optional[str] = Field(default=None, alias="categoryName")


# =========================
# PRODUCT CATEGORY
# =========================
class ProductCategoryBase(Record):
    name: str = Field(min_length=1)
    image_path: Optional[str] = Field(default=None, alias="imagePath")


class ProductCategoryCreate(ProductCategoryBase):
    pass


class ProductCategoryUpdate(Record):
    name: Optional[str] = None
    image_path: Optional[str] = Field(default=None, alias="imagePath")


class ProductCategory(ProductCategoryBase):
    id: int
    created_at: datetime
    updated_at: datetime


# =========================
# PRODUCT
# =========================
class ProductBase(Record):
    name: str = Field(min_length=1)
    price: Decimal
    price_for_three: Optional[Decimal] = Field(default=None, alias="priceForThree")
    price_for_kfetier: Decimal = Field(alias="priceForKfetier")
    price_for_three_kfetier: Optional[Decimal] = Field(
        default=None, alias="priceForThreeKfetier"
    )
    category_id: Optional[int] = Field(default=None, alias="categoryId")
    image_path: Optional[str] = Field(default=None, alias="imagePath")


class ProductCreate(ProductBase):
    pass


class ProductUpdate(Record):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    price_for_three: Optional[Decimal] = Field(default=None, alias="priceForThree")
    price_for_kfetier: Optional[Decimal] = Field(default=None, alias="priceForKfetier")
    price_for_three_kfetier: Optional[Decimal] = Field(
        default=None, alias="priceForThreeKfetier"
    )
    category_id: Optional[int] = Field(default=None, alias="categoryId")
    image_path: Optional[str] = Field(default=None, alias="imagePath")


class Product(ProductBase):
    id: int
    created_at: datetime
    updated_at: datetime


# =========================
# ORDER
# =========================
class OrderCreate(Record):
    customer_id: Optional[int] = Field(default=None, alias="customerId")
    product_id: Optional[int] = Field(default=None, alias="productId")
    quantity: int
    # Trusted as given, never recomputed from the product price
    total_price: Decimal = Field(alias="totalPrice")


class Order(OrderCreate):
    id: int
    created_at: datetime


# =========================
# MONEY ADJUSTMENT
# =========================
class BalanceAdjustment(Record):
    amount: Decimal


class MoneyAdjustment(Record):
    id: int
    customer_id: int = Field(alias="customerId")
    amount: Decimal
    created_at: datetime
