"""Database Models - Pydantic models for cart rows and their joined relations."""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from storefront.cart.models import CartLine
from storefront.services.money import to_decimal as _to_decimal


def _first_if_list(value: Any) -> Any:
    # PostgREST embeds can come back as a one-element list
    if isinstance(value, list):
        return value[0] if value else None
    return value


class ProductSummary(BaseModel):
    """Product fields embedded in a cart row."""
    id: Optional[str] = None
    name: str = ""
    slug: str = ""
    image_urls: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore")


class VariantSummary(BaseModel):
    """Variant fields embedded in a cart row."""
    id: Optional[str] = None
    name: str = ""
    slug: str = ""
    price: Decimal = Decimal("0")
    discount_percent: Decimal = Decimal("0")
    stock: int = 0
    is_active: bool = True

    model_config = ConfigDict(extra="ignore")

    @field_validator("price", "discount_percent", mode="before")
    @classmethod
    def convert_to_decimal(cls, v):
        return _to_decimal(v)


class CartItemRow(BaseModel):
    """Row of cart_items joined with products and product_variants."""
    id: Optional[str] = None
    product_id: str
    variant_id: str
    quantity: int
    product: Optional[ProductSummary] = None
    variant: Optional[VariantSummary] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("product", "variant", mode="before")
    @classmethod
    def unwrap_relation(cls, v):
        return _first_if_list(v)

    def to_line(self) -> CartLine:
        """Denormalize into the cart line wire model."""
        product = self.product or ProductSummary()
        variant = self.variant or VariantSummary()
        image_urls = product.image_urls or []
        return CartLine(
            product_id=self.product_id,
            variant_id=self.variant_id,
            quantity=self.quantity,
            product_name=product.name,
            product_slug=product.slug,
            variant_name=variant.name,
            price=variant.price,
            discount_percent=variant.discount_percent,
            image_url=image_urls[0] if image_urls else None,
            stock=variant.stock,
            is_active=variant.is_active,
        )
