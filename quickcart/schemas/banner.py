from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class Banner(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(alias="_id")
    title: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    isActive: bool = True
    displayOrder: int = 0
