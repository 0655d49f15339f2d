from __future__ import annotations

from bistro.repositories.base import BaseRepository
from bistro.repositories.bundle import BundleRepository
from bistro.repositories.category import CategoryRepository
from bistro.repositories.dish import DishRepository
from bistro.repositories.settings import SettingsRepository

__all__ = [
    "BaseRepository",
    "BundleRepository",
    "CategoryRepository",
    "DishRepository",
    "SettingsRepository",
]
