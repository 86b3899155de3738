from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Store(Base):
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    slug: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        doc=(
            "Public identifier used in storefront URLs and cache keys. The"
            " tenant layer restricts it to lowercase letters, digits, and"
            " hyphens."
        ),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_pic_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    products: Mapped[list[Product]] = relationship(
        "Product",
        back_populates="store",
        cascade="all, delete-orphan",
        order_by="Product.position",
    )
    social_links: Mapped[list[SocialLink]] = relationship(
        "SocialLink",
        back_populates="store",
        cascade="all, delete-orphan",
        order_by="SocialLink.position",
    )
    customization: Mapped[StoreCustomization | None] = relationship(
        "StoreCustomization",
        back_populates="store",
        cascade="all, delete-orphan",
        uselist=False,
    )


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (Index("ix_products_store_position", "store_id", "position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    store_id: Mapped[str] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(
        String(32), nullable=False, default="link"
    )  # 'link', 'lead_magnet', 'digital_product', 'section'
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subtitle: Mapped[str | None] = mapped_column(String(512), nullable=True)
    url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    button_text: Mapped[str | None] = mapped_column(String(128), nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    style: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    store: Mapped[Store] = relationship("Store", back_populates="products")


class SocialLink(Base):
    __tablename__ = "social_links"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    store_id: Mapped[str] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    store: Mapped[Store] = relationship("Store", back_populates="social_links")


class StoreCustomization(Base):
    __tablename__ = "store_customization"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    store_id: Mapped[str] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    theme: Mapped[str | None] = mapped_column(String(64), nullable=True)
    layout: Mapped[str] = mapped_column(String(32), nullable=False, default="default")
    font_family: Mapped[str | None] = mapped_column(String(64), nullable=True)
    button_shape: Mapped[str | None] = mapped_column(String(32), nullable=True)
    colors: Mapped[dict[str, str]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Named palette entries (background, text, button, accent).",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    store: Mapped[Store] = relationship("Store", back_populates="customization")


# Analytics tables live in their own module but share ``Base``.
from .analytics import AnalyticsEvent, AnalyticsSessionRecord  # noqa: E402

__all__ = [
    "AnalyticsEvent",
    "AnalyticsSessionRecord",
    "Base",
    "Product",
    "SocialLink",
    "Store",
    "StoreCustomization",
    "new_uuid",
    "utcnow",
]
