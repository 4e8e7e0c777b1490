from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlencode

from catalog_sync.codec.filter_codec import FilterCodec, UrlParams
from catalog_sync.domain.errors import DecodeWarning
from catalog_sync.domain.filters import FilterState
from catalog_sync.domain.views import ViewConfig
from catalog_sync.use_cases.active_filter_view import ActiveFilterView, FilterChip


@dataclass(frozen=True, slots=True)
class ViewQueryResult:
    state: FilterState
    query: str
    chips: list[FilterChip]
    redirect: bool  # True when the incoming URL was not already canonical
    warnings: tuple[DecodeWarning, ...] = ()


class EditViewQuery:
    """
    Stateless URL editing for one view.

    Server-side counterpart of CatalogSession's commands: each call decodes
    an incoming query, optionally applies one patch, and returns the canonical
    query plus chips. Nothing is fetched.
    """

    def __init__(self, view: ViewConfig) -> None:
        self._view = view
        self._chips = ActiveFilterView(view)

    def canonicalize(self, params: UrlParams) -> ViewQueryResult:
        decoded = FilterCodec.decode_query(params, self._view)
        return self._result(params, decoded.state, decoded.passthrough, decoded.warnings)

    def apply_patch(self, params: UrlParams, patch: Mapping[str, Any]) -> ViewQueryResult:
        """
        Raises:
            FilterValidationError: If the patch is invalid
            LockedKeyViolation: If the patch changes a locked key
        """
        decoded = FilterCodec.decode_query(params, self._view)
        state = FilterCodec.apply_patch(decoded.state, patch, self._view)
        return self._result(params, state, decoded.passthrough, decoded.warnings)

    def remove_filter(self, params: UrlParams, key: str, value: str | None = None) -> ViewQueryResult:
        """
        Raises:
            LockedKeyViolation: If ``key`` is locked by the view
        """
        decoded = FilterCodec.decode_query(params, self._view)
        patch = self._chips.remove_filter(decoded.state, key, value)
        state = FilterCodec.apply_patch(decoded.state, patch, self._view)
        return self._result(params, state, decoded.passthrough, decoded.warnings)

    def clear_all(self, params: UrlParams) -> ViewQueryResult:
        decoded = FilterCodec.decode_query(params, self._view)
        patch = self._chips.clear_all(decoded.state)
        state = FilterCodec.apply_patch(decoded.state, patch, self._view)
        return self._result(params, state, decoded.passthrough, decoded.warnings)

    def _result(
        self,
        params: UrlParams,
        state: FilterState,
        passthrough: tuple[tuple[str, str], ...],
        warnings: tuple[DecodeWarning, ...],
    ) -> ViewQueryResult:
        query = FilterCodec.to_query_string(state, self._view, passthrough)
        return ViewQueryResult(
            state=state,
            query=query,
            chips=self._chips.derive(state),
            redirect=query != urlencode(FilterCodec.parse_params(params)),
            warnings=warnings,
        )
