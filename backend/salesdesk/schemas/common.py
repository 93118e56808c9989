"""Common schemas used across the application."""

from typing import Generic, TypeVar, Union

from pydantic import BaseModel

T = TypeVar("T")

# Raw monetary / percentage input: "$1,200.50", "5%", 12.5 or 12.
# Parsing and range checks happen in salesdesk.domain.money.
MoneyInput = Union[str, int, float]


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper.

    Usage:
        response_model=PaginatedResponse[DocumentOut]

    Returns:
        {
            "items": [...],
            "total": 150,
            "limit": 50,
            "offset": 0
        }
    """
    items: list[T]
    total: int
    limit: int
    offset: int
