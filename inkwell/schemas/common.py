
from urllib.parse import urlparse
from typing import Annotated
from pydantic import BaseModel, ConfigDict, PositiveInt, StringConstraints, model_validator
from pydantic.alias_generators import to_camel

SLUG_REGEX = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

# numeric strings such as "12" are coerced to int
Id = PositiveInt

class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

class PartialUpdate(CamelModel):
    """Base for PATCH inputs: absent fields stay unchanged, explicit nulls clear."""

    @model_validator(mode="after")
    def _require_changes(self):
        if not (self.model_fields_set - {"id"}):
            raise ValueError("At least one field must be provided for update")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"id"})

def clean_image_url(value, label: str = "Image"):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a valid URL")
    value = value.strip()
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{label} must be a valid URL")
    return value

def reject_null(value, label: str):
    if value is None:
        raise ValueError(f"{label} cannot be null")
    return value

def unique_ids(ids: list[int] | None) -> list[int] | None:
    if ids is None:
        return None
    return list(dict.fromkeys(ids))

SlugInput = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

class SlugIn(CamelModel):
    slug: SlugInput
