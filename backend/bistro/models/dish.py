from __future__ import annotations

import re
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator

from bistro.core.constants import Availability, DishStatus, DishType
from bistro.models.base import BaseModel

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def check_slug(value: Optional[str]) -> Optional[str]:
    if value is not None and not SLUG_PATTERN.match(value):
        raise ValueError("slug may contain only lowercase latin letters, digits and hyphens")
    return value


class DishCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: str = ""
    price: float = Field(ge=0)
    currency: str = Field(default="ILS", min_length=3, max_length=3)
    type: DishType = DishType.RESTAURANT
    category_id: Optional[int] = None
    spice_level: int = Field(default=0, ge=0, le=3)
    is_vegan: bool = False
    is_vegetarian: bool = False
    is_gluten_free: bool = False
    availability: Availability = Availability.AVAILABLE
    status: DishStatus = DishStatus.DRAFT
    publish_at: Optional[datetime] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return check_slug(value)


class DishUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    type: Optional[DishType] = None
    category_id: Optional[int] = None
    spice_level: Optional[int] = Field(default=None, ge=0, le=3)
    is_vegan: Optional[bool] = None
    is_vegetarian: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    availability: Optional[Availability] = None
    status: Optional[DishStatus] = None
    publish_at: Optional[datetime] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return check_slug(value)


class Dish(BaseModel):
    id: int
    slug: str
    title: str
    description: str = ""
    price: float
    currency: str = "ILS"
    type: DishType = DishType.RESTAURANT
    category_id: Optional[int] = None
    spice_level: int = 0
    is_vegan: bool = False
    is_vegetarian: bool = False
    is_gluten_free: bool = False
    availability: Availability = Availability.AVAILABLE
    status: DishStatus = DishStatus.DRAFT
    publish_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class BulkDishAction(BaseModel):
    """Apply one change to several dishes at once.

    ``assign_category`` moves every dish into ``category_id``;
    ``add_to_bundles`` appends the dishes to each bundle in ``bundle_ids``.
    """

    action: Literal["assign_category", "add_to_bundles"]
    dish_ids: list[int] = Field(min_length=1)
    category_id: Optional[int] = None
    bundle_ids: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_target(self) -> BulkDishAction:
        if self.action == "assign_category" and self.category_id is None:
            raise ValueError("category_id is required for assign_category")
        if self.action == "add_to_bundles" and not self.bundle_ids:
            raise ValueError("bundle_ids must name at least one bundle")
        return self


class BulkDishDelete(BaseModel):
    dish_ids: list[int] = Field(min_length=1)
