"""Request and response models for the HTTP API."""

import datetime as dt
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from calorie_tracker.domain.nutrition import FoodSource


class AddFoodRequest(BaseModel):
    """Food selection to log; macros are coerced by the ledger."""

    name: str = ""
    calories: float | str | None = None
    protein: float | str | None = None
    carbs: float | str | None = None
    fats: float | str | None = None
    amount: float | str | None = Field(
        default=None,
        validation_alias=AliasChoices("amount", "weight", "quantity"),
    )


class GoalsRequest(BaseModel):
    """Replacement daily goals."""

    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fats: float = Field(ge=0)


class FoodDatabaseRequest(BaseModel):
    """Curated food to add to the database."""

    name: str
    calories: float | str | None = None
    protein: float | str | None = None
    carbs: float | str | None = None
    fats: float | str | None = None
    category: str = "general"


class MacroTotalsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    calories: float
    protein: float
    carbs: float
    fats: float


class FoodEntryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    calories: float
    protein: float
    carbs: float
    fats: float
    amount: float
    timestamp: dt.datetime


class DailyLedgerModel(BaseModel):
    """Serialized ledger, including remaining amounts toward goals."""

    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    goals: MacroTotalsModel
    consumed: MacroTotalsModel
    remaining: MacroTotalsModel
    entries: list[FoodEntryModel]
    created_at: dt.datetime
    updated_at: dt.datetime
    revision: int


class FoodRecordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    calories: float
    protein: float
    carbs: float
    fats: float
    category: str
    source: FoodSource
    fdc_id: int | None = None
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None


class SearchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    query: str
    foods: list[FoodRecordModel]
    source: str
    total: int


class WeeklySummaryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: dt.date
    end: dt.date
    days: int
    totals: MacroTotalsModel
    averages: MacroTotalsModel
    daily: list[DailyLedgerModel]
