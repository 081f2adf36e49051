"""Pydantic schemas for the ledger domain."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class AccountTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    description: Optional[str] = None
    normal_balance: Literal["debit", "credit"]


class AccountTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    description: Optional[str] = None
    normal_balance: Optional[Literal["debit", "credit"]] = None
    is_active: Optional[bool] = None


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    account_type_id: int
    code: Optional[str] = Field(default=None, min_length=1, max_length=32)
    parent_id: Optional[int] = None
    description: Optional[str] = None
    is_header: bool = False


class AccountUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    code: Optional[str] = Field(default=None, min_length=1, max_length=32)
    account_type_id: Optional[int] = None
    parent_id: Optional[int] = None
    description: Optional[str] = None
    is_header: Optional[bool] = None


class AccountCodeQuery(BaseModel):
    account_type_id: int
    parent_id: Optional[int] = None


class OpeningBalanceSet(BaseModel):
    balance: Decimal
    as_of: Optional[date] = None


class JournalLineInput(BaseModel):
    account_id: int
    description: Optional[str] = Field(default=None, max_length=512)
    debit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    credit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    image_data: Optional[str] = None


class JournalEntryCreateRequest(BaseModel):
    entry_date: date
    description: str = Field(min_length=1, max_length=512)
    reference: Optional[str] = Field(default=None, max_length=128)
    lines: List[JournalLineInput] = Field(min_length=2, max_length=100)


class DateRangeMixin(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class JournalEntryFilter(DateRangeMixin):
    account_type: Optional[str] = Field(default=None, max_length=64)
    search_term: Optional[str] = Field(default=None, max_length=128)


class TrialBalanceFilter(DateRangeMixin):
    include_opening: bool = False


class AccountDetailFilter(DateRangeMixin):
    include_opening: bool = False
    include_sub_accounts: bool = True


class BalanceSheetFilter(BaseModel):
    as_of: date = Field(default_factory=date.today)


class PeriodFilter(DateRangeMixin):
    """Statements over a closed period; both bounds are required."""

    start_date: date
    end_date: date
