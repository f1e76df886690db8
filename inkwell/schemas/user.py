
from datetime import datetime
from typing import Annotated
from pydantic import EmailStr, StringConstraints, field_validator
from inkwell.schemas.common import CamelModel, Id, PartialUpdate, clean_image_url, reject_null

UserName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]

class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: str
    is_active: bool
    bio: str | None = None
    profile_image: str | None = None
    cover_image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

class UserUpdate(PartialUpdate):
    id: Id
    name: UserName | None = None
    email: EmailStr | None = None
    bio: str | None = None
    profile_image: str | None = None
    cover_image: str | None = None

    @field_validator("name", "email", mode="before")
    @classmethod
    def _not_null(cls, value, info):
        return reject_null(value, info.field_name.capitalize())

    @field_validator("profile_image", "cover_image", mode="before")
    @classmethod
    def _image_url(cls, value, info):
        label = "Profile image" if info.field_name == "profile_image" else "Cover image"
        return clean_image_url(value, label)

class AuthorIn(CamelModel):
    name: UserName
    email: EmailStr | None = None

class EmailIn(CamelModel):
    email: EmailStr
