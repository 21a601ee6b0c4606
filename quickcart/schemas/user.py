from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional


class LoginSchema(BaseModel):
    email: EmailStr
    password: str


class TokenPair(BaseModel):
    accesstoken: str
    refreshToken: Optional[str] = None


class RefreshTokenIn(BaseModel):
    refreshToken: str


class UserDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="allow")

    id: str = Field(alias="_id")
    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[str] = None
    verify_email: bool = False
