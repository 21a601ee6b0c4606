from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="allow")

    id: str = Field(alias="_id")
    orderId: Optional[str] = None
    productId: Optional[str] = None
    product_details: Dict[str, Any] = Field(default_factory=dict)
    paymentId: Optional[str] = None
    payment_status: Optional[str] = None
    order_status: Optional[str] = None
    subTotalAmt: float = 0.0
    totalAmt: float = 0.0
    createdAt: Optional[str] = None
