"""
Schemas for admin dataset upload, deletion and history endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DatasetTypeName = Literal["budgets", "actuals", "transactions", "revenues"]
UploadModeName = Literal["append", "replace_year", "replace_table"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadIngestionRequest(_CamelModel):
    dataset_type: DatasetTypeName
    mode: UploadModeName
    replace_year: int | None = None
    confirm_replace_table: bool = False
    records: list[dict[str, Any]] = Field(default_factory=list)
    filename: str | None = Field(default=None, max_length=500)


class UploadIngestionResponse(_CamelModel):
    ok: bool = True
    dataset_type: DatasetTypeName
    mode: UploadModeName
    inserted_count: int
    affected_fiscal_years: list[int] = Field(default_factory=list)
    recomputed_fiscal_years: list[int] = Field(default_factory=list)
    message: str


class DeleteFiscalYearRequest(_CamelModel):
    dataset_type: DatasetTypeName
    fiscal_year: int


class DeleteFiscalYearResponse(_CamelModel):
    ok: bool = True
    dataset_type: DatasetTypeName
    fiscal_year: int
    deleted_count: int
    message: str


class UploadHistoryEntryResponse(_CamelModel):
    dataset_type: DatasetTypeName
    mode: str
    row_count: int
    fiscal_year: int | None = None
    filename: str | None = None
    actor: str | None = None
    created_at: datetime | None = None


class UploadHistoryResponse(_CamelModel):
    entries: list[UploadHistoryEntryResponse] = Field(default_factory=list)
