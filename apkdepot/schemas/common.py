"""Shared response wrappers."""
from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PagedResponse(BaseModel, Generic[T]):
    """Page of items plus the total number of matches."""
    items: List[T]
    total: int
    page: int
    size: int
