
from typing import Annotated
from pydantic import StringConstraints, field_validator
from inkwell.schemas.common import CamelModel, Id, PartialUpdate, SLUG_REGEX, reject_null

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
CategorySlug = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50, pattern=SLUG_REGEX)]
Description = Annotated[str, StringConstraints(max_length=200)]

class CategoryCreate(CamelModel):
    name: CategoryName
    slug: CategorySlug | None = None
    description: Description | None = None

class CategoryUpdate(PartialUpdate):
    id: Id
    name: CategoryName | None = None
    slug: CategorySlug | None = None
    description: Description | None = None

    @field_validator("name", "slug", mode="before")
    @classmethod
    def _not_null(cls, value, info):
        return reject_null(value, info.field_name.capitalize())

class CategoryOut(CamelModel):
    id: int
    name: str
    slug: str
    description: str | None = None
