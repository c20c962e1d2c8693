"""Tolerated response shapes for history collections.

The remote returns either a bare JSON array or an object carrying the array
under ``data``, ``results`` or ``items``. Candidates are tried in that order
and the first structural match wins.
"""

from __future__ import annotations

from typing import Any, Sequence, Type

from pydantic import BaseModel, RootModel, ValidationError

from ..errors import InvalidResponseShape


class BareArrayResponse(RootModel[list[Any]]):
    def entries(self) -> list[Any]:
        return self.root


class DataEnvelope(BaseModel):
    data: list[Any]

    def entries(self) -> list[Any]:
        return self.data


class ResultsEnvelope(BaseModel):
    results: list[Any]

    def entries(self) -> list[Any]:
        return self.results


class ItemsEnvelope(BaseModel):
    items: list[Any]

    def entries(self) -> list[Any]:
        return self.items


DEFAULT_CANDIDATES: tuple[Type[BaseModel], ...] = (
    BareArrayResponse,
    DataEnvelope,
    ResultsEnvelope,
    ItemsEnvelope,
)


def extract_entries(
    payload: Any, candidates: Sequence[Type[BaseModel]] = DEFAULT_CANDIDATES
) -> list[Any]:
    for candidate in candidates:
        try:
            matched = candidate.model_validate(payload)
        except ValidationError:
            continue
        return matched.entries()  # type: ignore[attr-defined]
    raise InvalidResponseShape(f"no known history shape matched {type(payload).__name__} payload")
