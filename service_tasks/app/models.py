"""
Data models for the Tasks service.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.errors import UnderlyingOperationFailedError


T = TypeVar("T")


class CacheStatus(str, Enum):
    """Where a list/read response came from."""

    HIT = "hit"
    MISS = "miss"
    BYPASS = "bypass"


@dataclass
class Outcome(Generic[T]):
    """Tagged result of a record operation.

    ``success`` is all the cache layer inspects; ``result`` is whatever the
    record store returned and must already be JSON-compatible.
    """

    success: bool
    status_code: int = 200
    result: Optional[T] = None
    result_info: Optional[Dict[str, Any]] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)
    cache_status: Optional[CacheStatus] = None

    @classmethod
    def ok(cls, result: T, *, status_code: int = 200, result_info: Optional[Dict[str, Any]] = None) -> "Outcome[T]":
        return cls(success=True, status_code=status_code, result=result, result_info=result_info)

    @classmethod
    def failure(cls, error: UnderlyingOperationFailedError) -> "Outcome[T]":
        return cls(
            success=False,
            status_code=error.status_code,
            errors=[{"code": error.code, "message": error.message, **({"details": error.details} if error.details else {})}],
        )

    @classmethod
    def from_payload(cls, payload: Any, *, status_code: int = 200) -> Optional["Outcome[Any]"]:
        """Rebuild a successful outcome from a cached payload.

        Returns None when the payload is not a success payload.
        """
        if not isinstance(payload, Mapping) or payload.get("success") is not True:
            return None
        return cls(
            success=True,
            status_code=status_code,
            result=payload.get("result"),
            result_info=payload.get("result_info"),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Response body; also the exact value written to the cache."""
        if not self.success:
            return {"success": False, "errors": self.errors}
        payload: Dict[str, Any] = {"success": True, "result": self.result}
        if self.result_info is not None:
            payload["result_info"] = self.result_info
        return payload


class TaskFields(BaseModel):
    """Writable task fields."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Task name")
    slug: str = Field(..., min_length=1, description="URL-friendly identifier")
    description: Optional[str] = Field(None, description="Task description")
    completed: bool = Field(default=False, description="Completion flag")
    due_date: datetime = Field(..., description="Due date")

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Task(TaskFields):
    """Stored task."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., ge=1, description="Task ID")


class OrderDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TaskOrderField(str, Enum):
    ID = "id"
    NAME = "name"
    SLUG = "slug"
    DUE_DATE = "due_date"
    COMPLETED = "completed"


SEARCH_FIELDS = ("name", "slug", "description")


@dataclass
class TaskListQuery:
    """Paging, search and ordering for ``GET /tasks``."""

    page: int = 1
    per_page: int = 20
    search: Optional[str] = None
    order_by: TaskOrderField = TaskOrderField.ID
    order_by_direction: OrderDirection = OrderDirection.DESC
    completed: Optional[bool] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page
