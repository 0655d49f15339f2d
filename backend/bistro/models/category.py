from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from bistro.core.constants import DishType
from bistro.models.base import BaseModel
from bistro.models.dish import check_slug


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=50)
    type_scope: Optional[DishType] = None
    order: int = Field(default=0, ge=0)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return check_slug(value)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=50)
    type_scope: Optional[DishType] = None
    order: Optional[int] = Field(default=None, ge=0)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        return check_slug(value)


class CategoryOrder(BaseModel):
    id: int
    order: int = Field(ge=0)


class ReorderRequest(BaseModel):
    categories: list[CategoryOrder]


class Category(BaseModel):
    id: int
    slug: str
    name: str
    type_scope: Optional[DishType] = None
    order: int = 0
    created_at: datetime
    updated_at: datetime
