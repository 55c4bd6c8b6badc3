from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal
from datetime import datetime

from storefront.schemas.common import ORMBase

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for user registration requests
class UserCreate(UserBase):
    name: str = Field(min_length=2, max_length=50)
    password: str = Field(min_length=6)

# Output schema for user profile details
class UserResponse(ORMBase):
    id: int
    name: str
    email: EmailStr
    role: str
    phone_number: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse

class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone_number: Optional[str] = None

# Schema for administrative role updates
class RoleUpdate(BaseModel):
    role: Literal["user", "admin"]

class UserStats(BaseModel):
    total_orders: int
    total_spent: float
    orders_by_status: dict
