from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    Text,
    Numeric,
    Boolean,
    DateTime,
    text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import DeclarativeBase


# All the tables "stored" in the Base class are what the registry describes
class Base(DeclarativeBase):
    pass


# Delete policies for references, read by the registry
DETACH = "detach"  # clear the reference
CASCADE = "cascade"  # delete the dependent row
KEEP = "keep"  # audit rows keep pointing at history

# Amounts in euros, two decimal places
MONEY = Numeric(12, 2)


def created_at_column():
    return Column(
        "created_at",
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        info={"generated": True},
    )


def updated_at_column():
    return Column(
        "updated_at",
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        info={"generated": True},
    )


# =========================
# Category (student cohort)
# =========================
class Category(Base):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(Text, nullable=False)
    dept = Column(Text, nullable=False)  # "DI", "DA", ...
    year = Column(Text, nullable=False)  # "3A", "4A", ...

    created_at = created_at_column()
    updated_at = updated_at_column()


# =========================
# Customer
# =========================
class Customer(Base):
    """
    A venue customer with a prepaid account.
    The balance goes negative when the customer owes money.
    """

    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)

    first_name = Column("firstName", Text, nullable=False)
    last_name = Column("lastName", Text, nullable=False)
    account = Column(MONEY, default=0, server_default=text("0"))
    is_kfetier = Column(
        "isKfetier", Boolean, default=False, server_default=text("0")
    )

    category_id = Column(
        "categoryId",
        Integer,
        ForeignKey("categories.id"),
        nullable=True,
        info={"on_delete": DETACH},
    )

    created_at = created_at_column()
    updated_at = updated_at_column()


# =========================
# ProductCategory
# =========================
class ProductCategory(Base):
    __tablename__ = "productsCategories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(Text, nullable=False)
    image_path = Column("imagePath", Text, nullable=True)

    created_at = created_at_column()
    updated_at = updated_at_column()


# =========================
# Product
# =========================
class Product(Base):
    """
    Catalogue entry with its four price tiers.
    Member ("Kfetier") prices are usually lower but nothing enforces it.
    """

    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(Text, nullable=False)
    price = Column(MONEY, nullable=False)
    price_for_three = Column("priceForThree", MONEY, nullable=True)
    price_for_kfetier = Column("priceForKfetier", MONEY, nullable=False)
    price_for_three_kfetier = Column("priceForThreeKfetier", MONEY, nullable=True)

    category_id = Column(
        "categoryId",
        Integer,
        ForeignKey("productsCategories.id"),
        nullable=True,
        info={"on_delete": CASCADE},
    )
    image_path = Column("imagePath", Text, nullable=True)

    created_at = created_at_column()
    updated_at = updated_at_column()


# =========================
# Order (append only)
# =========================
class Order(Base):
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)

    customer_id = Column(
        "customerId",
        Integer,
        ForeignKey("customers.id"),
        nullable=True,  # anonymous cash sale
        info={"on_delete": KEEP},
    )
    product_id = Column(
        "productId",
        Integer,
        ForeignKey("products.id"),
        nullable=True,
        info={"on_delete": KEEP},
    )
    quantity = Column(Integer, nullable=False)
    total_price = Column("totalPrice", MONEY, nullable=False)

    created_at = created_at_column()


# =========================
# MoneyAdjustment (audit trail)
# =========================
class MoneyAdjustment(Base):
    __tablename__ = "money_adjustments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)

    customer_id = Column(
        "customerId",
        Integer,
        ForeignKey("customers.id"),
        nullable=False,
        info={"on_delete": KEEP},
    )
    amount = Column(MONEY, nullable=False)  # signed, positive is a top-up

    created_at = created_at_column()
