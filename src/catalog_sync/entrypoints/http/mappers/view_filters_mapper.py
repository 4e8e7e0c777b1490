from __future__ import annotations

from catalog_sync.domain.filters import FilterState
from catalog_sync.entrypoints.http.dtos.view_filters import (
    FilterChipDTO,
    FilterStateDTO,
    ViewFiltersResponseDTO,
)
from catalog_sync.use_cases.active_filter_view import FilterChip
from catalog_sync.use_cases.edit_view_query import ViewQueryResult


class ViewFiltersMapper:
    """Maps between domain query results and REST DTOs."""

    @staticmethod
    def to_state_dto(state: FilterState) -> FilterStateDTO:
        """
        Converts a FilterState to its DTO.

        Frozensets become sorted lists so responses are stable.
        """
        return FilterStateDTO(
            category=sorted(state.category),
            brand=sorted(state.brand),
            condition=sorted(state.condition),
            min_price=state.min_price,
            max_price=state.max_price,
            rating=state.rating,
            in_stock=state.in_stock,
            search=state.search,
            sort_by=state.sort_by.value,
            page=state.page,
            limit=state.limit,
            age_range=state.age_range,
        )

    @staticmethod
    def to_chip_dto(chip: FilterChip) -> FilterChipDTO:
        return FilterChipDTO(key=chip.key, label=chip.label, value=chip.value)

    @staticmethod
    def to_response(view_name: str, result: ViewQueryResult) -> ViewFiltersResponseDTO:
        return ViewFiltersResponseDTO(
            view=view_name,
            state=ViewFiltersMapper.to_state_dto(result.state),
            query=result.query,
            redirect=result.redirect,
            chips=[ViewFiltersMapper.to_chip_dto(chip) for chip in result.chips],
        )
