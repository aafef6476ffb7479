"""
Cart API Pydantic Models

Field names follow the camelCase JSON used by the storefront frontend.
"""
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CartItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: UUID = Field(alias="productId")
    variant_id: UUID = Field(alias="variantId")
    quantity: int = Field(gt=0, strict=True)
