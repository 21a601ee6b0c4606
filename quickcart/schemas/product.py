import math
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


def _as_number(value, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


class Variation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(alias="_id")
    size: Optional[str] = None
    price: float = 0.0
    stock: Optional[int] = None
    sku: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return _as_number(v)


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(alias="_id")
    name: Optional[str] = None
    description: Optional[str] = None
    image: List[str] = Field(default_factory=list)
    unit: Optional[str] = None
    price: float = 0.0
    # Percentage, 0-100
    discount: float = 0.0
    stock: Optional[int] = None
    hasVariations: bool = False
    variations: List[Variation] = Field(default_factory=list)

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return _as_number(v)

    @field_validator("discount", mode="before")
    @classmethod
    def _discount(cls, v):
        # Missing or malformed discounts count as no discount
        pct = _as_number(v)
        if pct < 0 or pct > 100:
            return 0.0
        return pct

    @field_validator("image", mode="before")
    @classmethod
    def _image(cls, v):
        # The API returns either a list of URLs or a single URL string
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v else []
        return [i["url"] if isinstance(i, dict) else i for i in v if i]

    @field_validator("variations", mode="before")
    @classmethod
    def _variations(cls, v):
        return v or []


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(alias="_id")
    name: str = ""
    image: Optional[str] = None
    displayOrder: int = 0
    active: bool = True
