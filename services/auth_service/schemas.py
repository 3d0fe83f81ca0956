from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from shared.schemas import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserLogin(CamelModel):
    email: EmailStr
    password: str


# OAuth2 clients expect snake_case here
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(CamelModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_active: bool
