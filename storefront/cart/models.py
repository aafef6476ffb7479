"""Cart line model with Decimal-based display pricing."""
import math
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Tuple

from storefront.services.money import to_decimal, to_float, final_price, line_total

# (product_id, variant_id) uniquely identifies a line in a cart
CartKey = Tuple[str, str]


def make_key(product_id: str, variant_id: str) -> CartKey:
    return (str(product_id), str(variant_id))


def _whole_number(value, name: str) -> int:
    # json.loads accepts 1e400 and Infinity
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"{name} must be finite")
    return int(value)


@dataclass
class CartLine:
    """
    Single purchasable unit in the cart.

    Display fields are a snapshot taken when the line was added or fetched;
    checkout re-reads price and stock from the variant. `stock` and `is_active`
    are only set on lines that came from the server.
    """
    product_id: str
    variant_id: str
    quantity: int
    product_name: str = ""
    product_slug: str = ""
    variant_name: str = ""
    price: Decimal = Decimal("0")
    discount_percent: Decimal = Decimal("0")
    image_url: Optional[str] = None
    stock: Optional[int] = None
    is_active: Optional[bool] = None

    def __post_init__(self):
        self.product_id = str(self.product_id)
        self.variant_id = str(self.variant_id)
        self.quantity = int(self.quantity)
        self.price = to_decimal(self.price)
        self.discount_percent = to_decimal(self.discount_percent)

    @property
    def key(self) -> CartKey:
        return (self.product_id, self.variant_id)

    @property
    def final_price(self) -> Decimal:
        """Price after discount for a single unit."""
        return final_price(self.price, self.discount_percent)

    @property
    def line_total(self) -> Decimal:
        """Total price for all units."""
        return line_total(self.price, self.discount_percent, self.quantity)

    @property
    def is_available(self) -> bool:
        """False when the variant is inactive or short on stock."""
        if self.is_active is False:
            return False
        if self.stock is not None and self.stock < self.quantity:
            return False
        return True

    def with_quantity(self, quantity: int) -> "CartLine":
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        """Convert to the camelCase wire format used by the cart API and local storage."""
        data = {
            "productId": self.product_id,
            "productName": self.product_name,
            "productSlug": self.product_slug,
            "variantId": self.variant_id,
            "variantName": self.variant_name,
            "price": to_float(self.price),
            "discountPercent": to_float(self.discount_percent),
            "imageUrl": self.image_url,
            "quantity": self.quantity,
        }
        if self.stock is not None:
            data["stock"] = self.stock
        if self.is_active is not None:
            data["isActive"] = self.is_active
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        """
        Create from the camelCase wire format.

        Raises KeyError, TypeError or ValueError on malformed input.
        """
        if not isinstance(data, dict):
            raise TypeError(f"cart line must be an object, got {type(data).__name__}")
        product_id = data["productId"]
        variant_id = data["variantId"]
        if not product_id or not variant_id:
            raise ValueError("productId and variantId must be non-empty")
        quantity = _whole_number(data["quantity"], "quantity")
        stock = data.get("stock")
        is_active = data.get("isActive")
        return cls(
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
            product_name=data.get("productName") or "",
            product_slug=data.get("productSlug") or "",
            variant_name=data.get("variantName") or "",
            price=to_decimal(data.get("price", 0)),
            discount_percent=to_decimal(data.get("discountPercent", 0)),
            image_url=data.get("imageUrl"),
            stock=_whole_number(stock, "stock") if stock is not None else None,
            is_active=bool(is_active) if is_active is not None else None,
        )
