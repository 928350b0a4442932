"""Analytics query parameters."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AggregationType(str, Enum):
    SUM = "SUM"
    AVERAGE = "AVERAGE"
    AVERAGE_SUM_ORG_UNIT = "AVERAGE_SUM_ORG_UNIT"
    LAST = "LAST"
    LAST_AVERAGE_ORG_UNIT = "LAST_AVERAGE_ORG_UNIT"
    COUNT = "COUNT"
    STDDEV = "STDDEV"
    VARIANCE = "VARIANCE"
    MIN = "MIN"
    MAX = "MAX"
    NONE = "NONE"
    DEFAULT = "DEFAULT"


class IdScheme(str, Enum):
    UID = "UID"
    CODE = "CODE"
    NAME = "NAME"
    ID = "ID"
    ATTRIBUTE = "ATTRIBUTE"


class Dimension(BaseModel):
    """An analytics dimension such as ``dx:fbfJHSPpUQD;cYeuwXTCPkU``."""

    model_config = ConfigDict(frozen=True)

    dimension: str = Field(min_length=1)
    items: tuple[str, ...] = ()

    @classmethod
    def of(cls, dimension: str, items: Sequence[str] = ()) -> Dimension:
        return cls(dimension=dimension, items=tuple(items))

    def render(self) -> str:
        if not self.items:
            return self.dimension
        return f"{self.dimension}:{';'.join(self.items)}"


class AnalyticsQuery(BaseModel):
    """Dimensions, filters and options for ``/api/analytics`` requests."""

    model_config = ConfigDict(frozen=True)

    dimensions: tuple[Dimension, ...] = ()
    filters: tuple[Dimension, ...] = ()
    aggregation_type: AggregationType | None = None
    start_date: str | None = None
    end_date: str | None = None
    skip_meta: bool | None = None
    skip_data: bool | None = None
    skip_rounding: bool | None = None
    ignore_limit: bool | None = None
    output_id_scheme: IdScheme | None = None
    input_id_scheme: IdScheme | None = None

    def add_dimension(self, dimension: str, items: Sequence[str] = ()) -> AnalyticsQuery:
        return self.model_copy(update={"dimensions": self.dimensions + (Dimension.of(dimension, items),)})

    def add_filter(self, dimension: str, items: Sequence[str] = ()) -> AnalyticsQuery:
        return self.model_copy(update={"filters": self.filters + (Dimension.of(dimension, items),)})

    def to_params(self) -> list[tuple[str, str]]:
        """Render as ``(key, value)`` pairs; unset options are omitted."""
        params: list[tuple[str, str]] = [("dimension", d.render()) for d in self.dimensions]
        params.extend(("filter", f.render()) for f in self.filters)

        if self.aggregation_type is not None:
            params.append(("aggregationType", self.aggregation_type.value))
        if self.start_date is not None:
            params.append(("startDate", self.start_date))
        if self.end_date is not None:
            params.append(("endDate", self.end_date))

        flags = (
            ("skipMeta", self.skip_meta),
            ("skipData", self.skip_data),
            ("skipRounding", self.skip_rounding),
            ("ignoreLimit", self.ignore_limit),
        )
        for key, flag in flags:
            if flag is not None:
                params.append((key, "true" if flag else "false"))

        if self.output_id_scheme is not None:
            params.append(("outputIdScheme", self.output_id_scheme.value))
        if self.input_id_scheme is not None:
            params.append(("inputIdScheme", self.input_id_scheme.value))
        return params
