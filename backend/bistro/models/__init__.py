from __future__ import annotations

from bistro.models.base import BaseModel as AppBaseModel
from bistro.models.auth import LoginRequest, LoginResponse, SessionData, VerifyResponse
from bistro.models.bundle import Bundle, BundleCreate, BundleIncludes, BundleUpdate
from bistro.models.category import (
    Category,
    CategoryCreate,
    CategoryOrder,
    CategoryUpdate,
    ReorderRequest,
)
from bistro.models.dish import (
    BulkDishAction,
    BulkDishDelete,
    Dish,
    DishCreate,
    DishUpdate,
)
from bistro.models.rate_limit import RateLimitRecord, RateLimitStatus
from bistro.models.revalidation import RevalidationResult
from bistro.models.settings import SiteSettings

__all__ = [
    "AppBaseModel",
    "LoginRequest",
    "LoginResponse",
    "SessionData",
    "VerifyResponse",
    "Bundle",
    "BundleCreate",
    "BundleIncludes",
    "BundleUpdate",
    "Category",
    "CategoryCreate",
    "CategoryOrder",
    "CategoryUpdate",
    "ReorderRequest",
    "Dish",
    "DishCreate",
    "BulkDishAction",
    "BulkDishDelete",
    "DishUpdate",
    "RateLimitRecord",
    "RateLimitStatus",
    "RevalidationResult",
    "SiteSettings",
]
