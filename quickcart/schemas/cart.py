from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from quickcart.schemas.product import Product


class CartItemIn(BaseModel):
    productId: str
    variationId: Optional[str] = None
    selectedSize: Optional[str] = None


class CartQtyUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    qty: int = Field(ge=0)


class CartItemDelete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")


class CartLineItem(BaseModel):
    """One entry of the server-side cart, with its product populated."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(alias="_id")
    product: Product = Field(alias="productId")
    variationId: Optional[str] = None
    selectedSize: Optional[str] = None
    quantity: int = Field(ge=0)


class LinePrice(BaseModel):
    unitPrice: float
    discountedUnitPrice: float
    quantity: int
    lineOriginalPrice: float
    lineDiscountedPrice: float
    saving: float
    discount: float = 0.0


class CartSummary(BaseModel):
    totalQuantity: int = 0
    totalDiscountedPrice: float = 0.0
    totalOriginalPrice: float = 0.0
