from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class Address(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str = Field(alias="_id")
    address_line: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    country: str = ""
    mobile: Optional[str] = None
    # Disabled addresses stay on the server with status False
    status: bool = True
