"""Pydantic input schemas.

Form posts and JSON bodies are validated here before any action touches the
database. ``validate_input`` turns pydantic errors into our
:class:`~budget_tracker.errors.ValidationError`.
"""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError

M = TypeVar("M", bound=BaseModel)

_FIELD_LABELS = {
    "category_id": "Category",
    "amount": "Amount",
    "transaction_date": "Date",
    "transaction_type": "Type",
    "target_amount": "Target amount",
    "current_amount": "Current amount",
    "target_date": "Target date",
    "name": "Name",
    "priority": "Priority",
    "period_type": "Period",
    "start_date": "Start date",
}


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _clean_tags(v) -> List[str]:
    """Comma string or list -> trimmed, de-duplicated tags."""
    if isinstance(v, str):
        v = v.split(",")
    seen: List[str] = []
    for tag in v:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class TransactionInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    category_id: int
    amount: float = Field(gt=0)
    description: Optional[str] = Field(default=None, max_length=255)
    transaction_date: dt.date
    transaction_type: Literal["income", "expense"]
    payment_method: Optional[str] = Field(default=None, max_length=40)
    location: Optional[str] = Field(default=None, max_length=120)
    tags: List[str] = Field(default_factory=list)

    @field_validator("description", "payment_method", "location", mode="before")
    @classmethod
    def _empty_strings(cls, v):
        return _blank_to_none(v)

    @field_validator("category_id", mode="before")
    @classmethod
    def _blank_category(cls, v):
        return _blank_to_none(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v):
        return _clean_tags(v) if v is not None else []


class TransactionUpdate(TransactionInput):
    """Partial update: every field optional."""

    category_id: Optional[int] = None
    amount: Optional[float] = Field(default=None, gt=0)
    transaction_date: Optional[dt.date] = None
    transaction_type: Optional[Literal["income", "expense"]] = None
    tags: Optional[List[str]] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v):
        return _clean_tags(v) if v is not None else None


class SavingsGoalInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=255)
    target_amount: float = Field(gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    target_date: Optional[dt.date] = None
    priority: int = Field(default=2, ge=1, le=3)

    @field_validator("description", "target_date", mode="before")
    @classmethod
    def _empty_strings(cls, v):
        return _blank_to_none(v)

    @field_validator("current_amount", "priority", mode="before")
    @classmethod
    def _default_when_blank(cls, v, info):
        if _blank_to_none(v) is None:
            return 0.0 if info.field_name == "current_amount" else 2
        return v


class BudgetInput(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    category_id: int
    amount: float = Field(gt=0)
    period_type: Literal["daily", "weekly", "monthly"] = "monthly"
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    @field_validator("start_date", "end_date", "period_type", mode="before")
    @classmethod
    def _empty_strings(cls, v, info):
        v = _blank_to_none(v)
        if v is None and info.field_name == "period_type":
            return "monthly"
        return v


def _describe(error: dict) -> str:
    loc = error.get("loc") or ()
    field = str(loc[0]) if loc else ""
    label = _FIELD_LABELS.get(field, field.replace("_", " ").capitalize() or "Input")
    if error.get("type") == "missing" or error.get("input") in (None, ""):
        return f"{label} is required."
    msg = error.get("msg", "is invalid")
    return f"{label}: {msg}."


def validate_input(schema: Type[M], data: dict) -> M:
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError([_describe(e) for e in exc.errors()]) from exc
