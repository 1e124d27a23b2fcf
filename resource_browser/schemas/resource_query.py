from pydantic import BaseModel, Field
from typing import Any, List, Literal

from resource_browser.services.field_types import FieldType

Dir = Literal["asc", "desc"]

class SearchFilter(BaseModel):
    model_config = {"frozen": True}

    name: str
    value: str
    type: FieldType

class OrderClause(BaseModel):
    model_config = {"frozen": True}

    field: str
    dir: Dir

class PageRequest(BaseModel):
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=100, ge=1)
    search: str = ""
    filters: List[SearchFilter] = []
    ordering: List[OrderClause] = []

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

class ResourceListResponse(BaseModel):
    total: int
    page: int
    per_page: int
    rows: List[Any] = []

class ResourceMeta(BaseModel):
    name: str
    fields: dict[str, str]
    primary_keys: List[str] = []
    search_fields: List[Any] = []
