from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FilterStateDTO(BaseModel):
    category: list[str]
    brand: list[str]
    condition: list[str]
    min_price: int | None = None
    max_price: int | None = None
    rating: int | None = None
    in_stock: bool = False
    search: str = ""
    sort_by: str
    page: int
    limit: int
    age_range: str | None = None


class FilterChipDTO(BaseModel):
    key: str
    label: str
    value: str | None = None


class ViewFiltersResponseDTO(BaseModel):
    """Canonical filters for a view plus the chips to display."""

    view: str
    state: FilterStateDTO
    query: str = Field(description="Canonical query string (without leading '?')")
    redirect: bool = Field(description="True when the client should replace its URL with 'query'")
    chips: list[FilterChipDTO]


class PatchFiltersRequestDTO(BaseModel):
    query: str = Field(default="", description="Current URL query string", examples=["brand=Lego&page=3"])
    patch: dict[str, Any] = Field(
        description="FilterState field names to new values; null resets to default",
        examples=[{"min_price": 500, "max_price": 2000}],
    )

    model_config = ConfigDict(
        json_schema_extra={"example": {"query": "brand=Lego", "patch": {"in_stock": True}}}
    )


class RemoveFilterRequestDTO(BaseModel):
    query: str = ""
    key: str = Field(examples=["brand"])
    value: str | None = Field(default=None, description="Set element to remove", examples=["Hasbro"])


class ClearFiltersRequestDTO(BaseModel):
    query: str = ""
