from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List

from storefront.utils.hashing import MAX_PASSWORD_BYTES

# Shared properties for principal models
class PrincipalBase(BaseModel):
    email: EmailStr

# Schema for login credentials
class PrincipalLogin(PrincipalBase):
    password: str = Field(min_length=1)

# Schema for registration requests; public registration always creates clients
class PrincipalCreate(PrincipalBase):
    password: str = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)
    name: str = Field(min_length=2, max_length=120)

    # bcrypt reads at most 72 bytes, not characters
    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v

# Output schema for principal profile details
class PrincipalResponse(PrincipalBase):
    id: int
    name: str
    role: str
    is_active: bool
    is_banned: bool

    class Config:
        from_attributes = True

# Schema for access token responses (refresh token travels in a cookie)
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Register/login response: the principal plus its access token
class AuthResponse(Token):
    user: PrincipalResponse

# Schema for paginated principal lists
class PrincipalsPage(BaseModel):
    items: List[PrincipalResponse]
    total: int
    page: int
    page_size: int
