from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from bistro.core.constants import DEFAULT_BUNDLE_MIN_PERSONS, DishStatus
from bistro.models.base import BaseModel
from bistro.models.dish import check_slug


class BundleIncludes(BaseModel):
    """How many of each course a catering bundle serves."""

    mains: int = Field(default=0, ge=0)
    salads: int = Field(default=0, ge=0)
    desserts: int = Field(default=0, ge=0)


def check_persons(min_persons: Optional[int], max_persons: Optional[int]) -> None:
    if min_persons is not None and max_persons is not None and min_persons > max_persons:
        raise ValueError("min_persons cannot be greater than max_persons")


class BundleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: str = ""
    price_per_person: float = Field(ge=0)
    min_persons: int = Field(default=DEFAULT_BUNDLE_MIN_PERSONS, ge=1)
    max_persons: Optional[int] = Field(default=None, ge=1)
    includes: BundleIncludes = Field(default_factory=BundleIncludes)
    dish_ids: list[int] = Field(default_factory=list)
    status: DishStatus = DishStatus.DRAFT
    publish_at: Optional[datetime] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return check_slug(value)

    @model_validator(mode="after")
    def validate_persons(self) -> BundleCreate:
        check_persons(self.min_persons, self.max_persons)
        return self


class BundleUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price_per_person: Optional[float] = Field(default=None, ge=0)
    min_persons: Optional[int] = Field(default=None, ge=1)
    max_persons: Optional[int] = Field(default=None, ge=1)
    includes: Optional[BundleIncludes] = None
    dish_ids: Optional[list[int]] = None
    status: Optional[DishStatus] = None
    publish_at: Optional[datetime] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return check_slug(value)


class Bundle(BaseModel):
    id: int
    slug: str
    title: str
    description: str = ""
    price_per_person: float
    min_persons: int = DEFAULT_BUNDLE_MIN_PERSONS
    max_persons: Optional[int] = None
    includes: BundleIncludes = Field(default_factory=BundleIncludes)
    dish_ids: list[int] = Field(default_factory=list)
    status: DishStatus = DishStatus.DRAFT
    publish_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
