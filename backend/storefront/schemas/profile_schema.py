# backend/storefront/schemas/profile_schema.py
"""
Esquemas Pydantic para los perfiles de cliente (gestión de clientes).
"""

from datetime import datetime
from typing import Optional, Any, Literal
from pydantic import BaseModel, EmailStr, ConfigDict, field_validator

ProfileStatus = Literal["active", "inactive", "suspended"]
UserRole = Literal["standard", "verified_members", "customer", "admin"]


class ProfileCreate(BaseModel):
    email: EmailStr
    name: str
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[Any] = None
    user_role: UserRole = "standard"
    status: ProfileStatus = "active"
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class ProfileUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[Any] = None
    user_role: Optional[UserRole] = None
    status: Optional[ProfileStatus] = None
    notes: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    business_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[Any] = None
    user_role: str
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
