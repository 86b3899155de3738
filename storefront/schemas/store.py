from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Slugs are lowercase alphanumerics and hyphens, so they never contain the
# ``:`` separator used by cache keys.
SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]{0,63}$"

ProductType = Literal["link", "lead_magnet", "digital_product", "section"]


class StoreProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    name: str
    bio: str | None = None
    profile_pic_url: str | None = None
    updated_at: datetime | None = None


class ProductItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    store_id: str
    type: ProductType = "link"
    name: str
    subtitle: str | None = None
    url: str | None = None
    thumbnail_url: str | None = None
    button_text: str | None = None
    price: float | None = None
    style: str | None = None
    is_published: bool = True
    position: int = 0


class SocialLinkItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    platform: str
    url: str
    position: int = 0


class StoreCustomizationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    theme: str | None = None
    layout: str = "default"
    font_family: str | None = None
    button_shape: str | None = None
    colors: dict[str, str] = Field(default_factory=dict)


class PublicStoreData(BaseModel):
    """Everything the public landing page renders for one tenant.

    This is the snapshot stored under ``storefront:<slug>``.
    """

    store: StoreProfile
    products: list[ProductItem] = Field(default_factory=list)
    social_links: list[SocialLinkItem] = Field(default_factory=list)
    customization: StoreCustomizationSchema | None = None


class OpenGraphImage(BaseModel):
    url: str
    width: int = 400
    height: int = 400
    alt: str


class PageMetadata(BaseModel):
    title: str
    description: str | None = None
    og_images: list[OpenGraphImage] = Field(default_factory=list)
    twitter_card: str = "summary"


# -- Dashboard mutation payloads ----------------------------------------------


class StoreProfileUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, pattern=SLUG_PATTERN)
    bio: str | None = Field(None, max_length=2000)
    profile_pic_url: str | None = Field(None, max_length=1024)


class SocialLinkInput(BaseModel):
    platform: str = Field(..., min_length=1, max_length=32)
    url: str = Field(..., min_length=1, max_length=2048)


class SocialLinksReplaceRequest(BaseModel):
    links: list[SocialLinkInput] = Field(default_factory=list)


class StoreDesignUpdate(BaseModel):
    theme: str | None = None
    layout: Literal["default", "hero", "bento"] | None = None
    font_family: str | None = None
    button_shape: str | None = None
    colors: dict[str, str] | None = None


class ProductCreate(BaseModel):
    type: ProductType = "link"
    name: str = Field(..., min_length=1, max_length=255)
    subtitle: str | None = None
    url: str | None = None
    thumbnail_url: str | None = None
    button_text: str | None = None
    price: float | None = Field(None, ge=0)
    style: str | None = None
    is_published: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    subtitle: str | None = None
    url: str | None = None
    thumbnail_url: str | None = None
    button_text: str | None = None
    price: float | None = Field(None, ge=0)
    style: str | None = None
    is_published: bool | None = None


class ProductReorderRequest(BaseModel):
    product_ids: list[str] = Field(..., min_length=1)
