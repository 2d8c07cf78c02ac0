from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from models.user import UserRole

# Login Schema
class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

# Admin identity carried by an access token
class AdminIdentity(BaseModel):
    id: str
    email: Optional[str] = None
    admin_role: Optional[str] = None

# User Response Schema
class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    admin_role: Optional[str]
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime]

    class Config:
        from_attributes = True

# Token Schema
class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse

# Token payload
class TokenData(BaseModel):
    user_id: str
    email: Optional[str] = None
    admin_role: Optional[str] = None
