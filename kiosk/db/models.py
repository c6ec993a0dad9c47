"""Database models."""
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

SUPPORTED_LANGUAGES = ("en", "fr", "de", "es", "it", "pt", "nl", "ru", "tr", "ar", "zh")


def _uuid() -> str:
    return str(uuid.uuid4())


def localized(*fields: str):
    """Add one nullable `<field>_<lang>` column per supported language."""

    def decorate(cls):
        for field in fields:
            for lang in SUPPORTED_LANGUAGES:
                setattr(cls, f"{field}_{lang}", Column(Text, nullable=True))
        return cls

    return decorate


class Restaurant(Base):
    """Restaurant (tenant) model."""

    __tablename__ = "restaurants"

    id = Column(String, primary_key=True, default=_uuid)
    owner_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=True)
    location = Column(String, nullable=True)
    currency = Column(String, default="EUR", nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=True)  # percent
    ui_language = Column(String, default="fr", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


@localized("name", "description")
class MenuCategory(Base):
    """Menu category model."""

    __tablename__ = "menu_categories"

    id = Column(String, primary_key=True, default=_uuid)
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)


@localized("name", "description")
class MenuItem(Base):
    """Menu item model."""

    __tablename__ = "menu_items"

    id = Column(String, primary_key=True, default=_uuid)
    category_id = Column(String, ForeignKey("menu_categories.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    promotion_price = Column(Numeric(10, 2), nullable=True)
    tax_percentage = Column(Numeric(5, 2), nullable=True)
    image = Column(String, nullable=True)
    in_stock = Column(Boolean, default=True, nullable=False)
    available_from = Column(String, nullable=True)  # HH:MM
    available_until = Column(String, nullable=True)  # HH:MM
    display_order = Column(Integer, default=0, nullable=False)


@localized("name")
class MenuItemOption(Base):
    """Configurable attribute of one menu item (e.g. size)."""

    __tablename__ = "menu_item_options"

    id = Column(String, primary_key=True, default=_uuid)
    menu_item_id = Column(String, ForeignKey("menu_items.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    required = Column(Boolean, default=False, nullable=False)
    multiple = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)


@localized("name")
class OptionChoice(Base):
    """Selectable value of a menu item option."""

    __tablename__ = "option_choices"

    id = Column(String, primary_key=True, default=_uuid)
    option_id = Column(String, ForeignKey("menu_item_options.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)


@localized("name", "description")
class ToppingCategory(Base):
    """Reusable group of toppings with selection rules."""

    __tablename__ = "topping_categories"

    id = Column(String, primary_key=True, default=_uuid)
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    min_selections = Column(Integer, default=0, nullable=False)
    max_selections = Column(Integer, default=0, nullable=False)  # 0 = unlimited
    allow_multiple_same_topping = Column(Boolean, default=False, nullable=False)
    show_if_selection_type = Column(JSON, nullable=True)  # ["option" | "topping", ...]
    show_if_selection_id = Column(JSON, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)


@localized("name")
class Topping(Base):
    """Topping model."""

    __tablename__ = "toppings"

    id = Column(String, primary_key=True, default=_uuid)
    category_id = Column(String, ForeignKey("topping_categories.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False)
    tax_percentage = Column(Numeric(5, 2), nullable=True)
    in_stock = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)


class MenuItemToppingCategory(Base):
    """Join between menu items and topping categories."""

    __tablename__ = "menu_item_topping_categories"

    id = Column(String, primary_key=True, default=_uuid)
    menu_item_id = Column(String, ForeignKey("menu_items.id"), nullable=False, index=True)
    topping_category_id = Column(String, ForeignKey("topping_categories.id"), nullable=False, index=True)
    display_order = Column(Integer, default=0, nullable=False)


class Order(Base):
    """Placed order model."""

    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=_uuid)
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False, index=True)
    order_number = Column(String, nullable=False)
    order_type = Column(String, nullable=True)  # dine-in, takeaway
    table_number = Column(String, nullable=True)
    status = Column(String, default="pending", nullable=False)  # pending, completed, cancelled
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    items = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Payment(Base):
    """Payment status, written by the external payment integration."""

    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=_uuid)
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(String, default="pending", nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class RestaurantPrintConfig(Base):
    """Printer routing for a restaurant."""

    __tablename__ = "restaurant_print_config"

    id = Column(String, primary_key=True, default=_uuid)
    restaurant_id = Column(String, ForeignKey("restaurants.id"), unique=True, nullable=False)
    configured_printers = Column(JSON, nullable=True)
    browser_printing_enabled = Column(Boolean, default=True, nullable=False)


class SecurityAuditLog(Base):
    """Security audit trail."""

    __tablename__ = "security_audit_log"

    id = Column(String, primary_key=True, default=_uuid)
    restaurant_id = Column(String, nullable=True, index=True)
    event_type = Column(String, nullable=False)
    severity = Column(String, default="info", nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
