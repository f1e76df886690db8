
from pydantic import EmailStr, Field
from inkwell.schemas.common import CamelModel

class SignupIn(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6, max_length=256)

class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)

class AuthUser(CamelModel):
    id: int
    name: str
    email: str
    role: str

class AuthOut(CamelModel):
    success: bool = True
    user: AuthUser
    token: str
    message: str

class IdentityOut(CamelModel):
    id: int
    email: str
    name: str | None = None
    permissions: list[str]
    roles: list[str]
