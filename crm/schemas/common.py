from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from crm.services.pagination import PageResult

ItemT = TypeVar("ItemT")


class LeadStatus(str, Enum):
    FREE_POOL = "free_pool"
    ASSIGNED = "assigned"
    ARCHIVED = "archived"
    DELETED = "deleted"


class CustomerStatus(str, Enum):
    OPEN = "open"
    CLOSE = "close"


CASE_TASK_COMPLETE = "Complete"

LOAN_TYPES: tuple[str, ...] = (
    "Home Loan",
    "Personal Loan",
    "Business Loan",
    "Education Loan",
    "Vehicle Loan",
    "LAP",
    "MSME",
    "LRD",
)
DEFAULT_LOAN_TYPE = "Home Loan"


class PageResponse(BaseModel, Generic[ItemT]):
    """Paged list body; the camelCase flags are what the web client reads."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[ItemT]
    total: int
    page: int
    pages: int
    limit: int
    has_next_page: bool = Field(alias="hasNextPage")
    has_prev_page: bool = Field(alias="hasPrevPage")

    @classmethod
    def from_result(cls, result: PageResult, items: list[Any] | None = None) -> "PageResponse[ItemT]":
        return cls(
            items=result.items if items is None else items,
            total=result.total,
            page=result.page,
            pages=result.pages,
            limit=result.limit,
            has_next_page=result.has_next_page,
            has_prev_page=result.has_prev_page,
        )


class MessageResponse(BaseModel):
    message: str
