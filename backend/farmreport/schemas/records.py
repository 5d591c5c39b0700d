# farmreport/schemas/records.py
"""
Upstream record shapes.

The farm backend speaks camelCase French field names (``mortaliteNbre``,
``consoEauL``...). These models accept those aliases, keep the Python side in
snake_case, and turn malformed optional numbers into ``None`` instead of
failing the whole payload.
"""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from farmreport.utils.numeric import coerce_float, coerce_int


class Sex(str, Enum):
    MALE = "Mâle"
    FEMALE = "Femelle"


# Chain order used everywhere a (building, sex) walk happens.
SEXES: Tuple[Sex, ...] = (Sex.MALE, Sex.FEMALE)


def _iso_or_none(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        return None
    # Timestamps collapse to their calendar day
    return text[:10]


def _text_or_none(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class _UpstreamModel(BaseModel):
    class Config:
        populate_by_name = True
        extra = "ignore"
        from_attributes = True


class DailyRecord(_UpstreamModel):
    """One (building, sex, day) row of the weekly technical follow-up."""

    id: Optional[int] = None
    farm_id: Optional[int] = Field(None, alias="farmId")
    lot: Optional[str] = None
    week: Optional[str] = Field(None, alias="semaine")
    building: Optional[str] = Field(None, alias="batiment")
    sex: Optional[str] = None
    record_date: Optional[str] = Field(None, alias="recordDate")
    age_in_days: Optional[int] = Field(None, alias="ageJour")
    mortality_count: int = Field(0, alias="mortaliteNbre")
    water_liters: Optional[float] = Field(None, alias="consoEauL")
    temp_min: Optional[float] = Field(None, alias="tempMin")
    temp_max: Optional[float] = Field(None, alias="tempMax")
    start_count: Optional[int] = Field(None, alias="effectifDepart")
    treatment: Optional[str] = Field(None, alias="traitement")
    verified: bool = False
    version: int = 0
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @field_validator("record_date", mode="before")
    @classmethod
    def _record_date(cls, v):
        return _iso_or_none(v)

    @field_validator("age_in_days", "start_count", mode="before")
    @classmethod
    def _optional_count(cls, v):
        out = coerce_int(v)
        if out is not None and out < 0:
            return None
        return out

    @field_validator("mortality_count", mode="before")
    @classmethod
    def _mortality(cls, v):
        out = coerce_int(v)
        return out if out is not None and out >= 0 else 0

    @field_validator("water_liters", "temp_min", "temp_max", mode="before")
    @classmethod
    def _optional_real(cls, v):
        return coerce_float(v)

    @field_validator("id", "farm_id", mode="before")
    @classmethod
    def _ids(cls, v):
        return coerce_int(v)

    @field_validator("created_at", "updated_at", mode="wrap")
    @classmethod
    def _timestamps(cls, v, handler):
        # Bookkeeping fields never decide whether a row is usable
        try:
            return handler(v)
        except ValidationError:
            return None

    @field_validator("lot", "week", "building", "sex", "treatment", mode="before")
    @classmethod
    def _text(cls, v):
        return _text_or_none(v)

    @field_validator("verified", mode="wrap")
    @classmethod
    def _verified(cls, v, handler):
        if v is None:
            return False
        try:
            return handler(v)
        except ValidationError:
            return False

    @field_validator("version", mode="before")
    @classmethod
    def _version(cls, v):
        return coerce_int(v) or 0


class LotSetup(_UpstreamModel):
    """Placement configuration of one (lot, building, sex)."""

    id: Optional[int] = None
    lot: Optional[str] = None
    building: Optional[str] = Field(None, alias="batiment")
    sex: Optional[str] = None
    initial_count: Optional[int] = Field(None, alias="effectifMisEnPlace")
    placement_date: Optional[str] = Field(None, alias="dateMiseEnPlace")
    strain: Optional[str] = Field(None, alias="souche")

    @field_validator("initial_count", mode="before")
    @classmethod
    def _count(cls, v):
        return coerce_int(v)

    @field_validator("placement_date", mode="before")
    @classmethod
    def _date(cls, v):
        return _iso_or_none(v)

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v):
        return coerce_int(v)

    @field_validator("lot", "building", "sex", "strain", mode="before")
    @classmethod
    def _text(cls, v):
        return _text_or_none(v)


class WeeklyProduction(_UpstreamModel):
    """Weekly exits for one key: carry-over, sales, on-farm consumption, other."""

    report_count: Optional[float] = Field(None, alias="reportNbre")
    report_weight: Optional[float] = Field(None, alias="reportPoids")
    sale_count: Optional[float] = Field(None, alias="venteNbre")
    sale_weight: Optional[float] = Field(None, alias="ventePoids")
    consumption_count: Optional[float] = Field(None, alias="consoNbre")
    consumption_weight: Optional[float] = Field(None, alias="consoPoids")
    other_count: Optional[float] = Field(None, alias="autreNbre")
    other_weight: Optional[float] = Field(None, alias="autrePoids")

    @field_validator("*", mode="before")
    @classmethod
    def _numbers(cls, v):
        return coerce_float(v)


class WeeklyStock(_UpstreamModel):
    live_weight_kg: Optional[float] = Field(None, alias="poidsVifProduitKg")
    feed_stock: Optional[float] = Field(None, alias="stockAliment")

    @field_validator("*", mode="before")
    @classmethod
    def _numbers(cls, v):
        return coerce_float(v)


class DailyReport(_UpstreamModel):
    """Daily report row; only its date feeds the saved-days overview."""

    id: Optional[int] = None
    farm_id: Optional[int] = Field(None, alias="farmId")
    report_date: Optional[str] = Field(None, alias="reportDate")

    @field_validator("id", "farm_id", mode="before")
    @classmethod
    def _ids(cls, v):
        return coerce_int(v)

    @field_validator("report_date", mode="before")
    @classmethod
    def _report_date(cls, v):
        return _iso_or_none(v)


__all__ = [
    "DailyRecord",
    "DailyReport",
    "LotSetup",
    "SEXES",
    "Sex",
    "WeeklyProduction",
    "WeeklyStock",
]
