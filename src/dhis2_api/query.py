"""Filtering, paging and ordering for DHIS2 list endpoints.

A ``Query`` is an immutable value built through fluent methods::

    query = (
        Query()
        .add(Filter.in_("code", ["LAO", "SLE"]))
        .with_paging(page=2, page_size=50)
        .with_order(Order.desc("name"))
    )

``render_query`` turns it into the ``(key, value)`` pairs DHIS2 expects, in
the fixed order filters, paging, order.  ``parse_query`` goes the other way.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Operator(str, Enum):
    """DHIS2 metadata filter operators."""

    EQ = "eq"
    NOT_EQ = "!eq"
    IEQ = "ieq"
    NE = "ne"
    LIKE = "like"
    NOT_LIKE = "!like"
    STARTS_LIKE = "$like"
    NOT_STARTS_LIKE = "!$like"
    ENDS_LIKE = "like$"
    NOT_ENDS_LIKE = "!like$"
    ILIKE = "ilike"
    NOT_ILIKE = "!ilike"
    STARTS_WITH = "$ilike"
    NOT_STARTS_WITH = "!$ilike"
    ENDS_WITH = "ilike$"
    NOT_ENDS_WITH = "!ilike$"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    NULL = "null"
    NOT_NULL = "!null"
    EMPTY = "empty"
    TOKEN = "token"
    NOT_TOKEN = "!token"
    IN = "in"
    NOT_IN = "!in"

    @property
    def is_set_membership(self) -> bool:
        """Operators whose value renders as a bracketed list, e.g. ``code:!in:[A,B]``.

        ``!in`` is bracketed like ``in``; every other operator takes a scalar.
        """
        return self in (Operator.IN, Operator.NOT_IN)

    @property
    def is_unary(self) -> bool:
        return self in (Operator.NULL, Operator.NOT_NULL, Operator.EMPTY)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class Filter(BaseModel):
    """A single ``property:operator:value`` restriction."""

    model_config = ConfigDict(frozen=True)

    property: str = Field(min_length=1)
    operator: Operator
    value: str | tuple[str, ...] | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_value(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        operator = Operator(data.get("operator"))
        value = data.get("value")
        if operator.is_unary:
            value = None
        elif operator.is_set_membership:
            if value is None:
                raise ValueError(f"Operator '{operator.value}' requires a list of values")
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                value = (_to_text(value),)
            else:
                value = tuple(_to_text(v) for v in value)
        else:
            if value is None:
                raise ValueError(f"Operator '{operator.value}' requires a value")
            if isinstance(value, (list, tuple, set, frozenset)):
                raise ValueError(f"Operator '{operator.value}' takes a single value, not a collection")
            value = _to_text(value)
        return {**data, "operator": operator, "value": value}

    def render(self) -> str:
        """Return the ``filter`` parameter value."""
        if self.operator.is_unary:
            return f"{self.property}:{self.operator.value}"
        if self.operator.is_set_membership:
            assert isinstance(self.value, tuple)
            return f"{self.property}:{self.operator.value}:[{','.join(self.value)}]"
        return f"{self.property}:{self.operator.value}:{self.value}"

    @classmethod
    def parse(cls, text: str) -> Filter:
        """Parse a rendered ``filter`` value back into a Filter."""
        parts = text.split(":", 2)
        if len(parts) < 2:
            raise ValueError(f"Invalid filter '{text}'")
        prop, op = parts[0], Operator(parts[1])
        raw = parts[2] if len(parts) == 3 else None
        if op.is_set_membership and raw is not None:
            inner = raw[1:-1] if raw.startswith("[") and raw.endswith("]") else raw
            items: list[str] = inner.split(",") if inner else []
            return cls(property=prop, operator=op, value=items)
        return cls(property=prop, operator=op, value=raw)

    # Factories for the common operators

    @classmethod
    def eq(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.EQ, value=value)

    @classmethod
    def ieq(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.IEQ, value=value)

    @classmethod
    def ne(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.NE, value=value)

    @classmethod
    def like(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.LIKE, value=value)

    @classmethod
    def ilike(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.ILIKE, value=value)

    @classmethod
    def gt(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.GT, value=value)

    @classmethod
    def ge(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.GE, value=value)

    @classmethod
    def lt(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.LT, value=value)

    @classmethod
    def le(cls, prop: str, value: Any) -> Filter:
        return cls(property=prop, operator=Operator.LE, value=value)

    @classmethod
    def in_(cls, prop: str, values: Sequence[Any] | str) -> Filter:
        return cls(property=prop, operator=Operator.IN, value=values)

    @classmethod
    def not_in(cls, prop: str, values: Sequence[Any] | str) -> Filter:
        return cls(property=prop, operator=Operator.NOT_IN, value=values)

    @classmethod
    def null(cls, prop: str) -> Filter:
        return cls(property=prop, operator=Operator.NULL)

    @classmethod
    def not_null(cls, prop: str) -> Filter:
        return cls(property=prop, operator=Operator.NOT_NULL)


class Paging(BaseModel):
    """Paging settings.  ``enabled=False`` renders ``paging=false``."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    page: int | None = Field(default=None, ge=1)
    page_size: int | None = Field(default=None, ge=1)

    @classmethod
    def disabled(cls) -> Paging:
        return cls(enabled=False)

    @property
    def has_page(self) -> bool:
        return self.enabled and self.page is not None

    @property
    def has_page_size(self) -> bool:
        return self.enabled and self.page_size is not None


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | Direction) -> Direction:
        if isinstance(value, Direction):
            return value
        return cls(value.strip().lower())


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    property: str = Field(min_length=1)
    direction: Direction = Direction.ASC

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Direction.parse(value)
        return value

    @classmethod
    def asc(cls, prop: str) -> Order:
        return cls(property=prop, direction=Direction.ASC)

    @classmethod
    def desc(cls, prop: str) -> Order:
        return cls(property=prop, direction=Direction.DESC)

    def render(self) -> str:
        return f"{self.property}:{self.direction.value}"

    @classmethod
    def parse(cls, text: str) -> Order:
        prop, _, direction = text.partition(":")
        return cls(property=prop, direction=direction or Direction.ASC)


class Query(BaseModel):
    """Immutable set of filters, paging and ordering for a list request."""

    model_config = ConfigDict(frozen=True)

    filters: tuple[Filter, ...] = ()
    paging: Paging = Field(default_factory=Paging)
    order: Order | None = None
    expand_associations: bool = False

    @classmethod
    def instance(cls) -> Query:
        """Return an empty query (server defaults for everything)."""
        return cls()

    def add(self, *filters: Filter) -> Query:
        return self.model_copy(update={"filters": self.filters + tuple(filters)})

    def with_paging(self, page: int | None = None, page_size: int | None = None) -> Query:
        return self.model_copy(update={"paging": Paging(page=page, page_size=page_size)})

    def without_paging(self) -> Query:
        return self.model_copy(update={"paging": Paging.disabled()})

    def with_order(self, order: Order) -> Query:
        return self.model_copy(update={"order": order})

    def with_expand_associations(self, expand: bool = True) -> Query:
        return self.model_copy(update={"expand_associations": expand})

    def to_params(self) -> list[tuple[str, str]]:
        return render_query(self)


def render_query(query: Query) -> list[tuple[str, str]]:
    """Render *query* as ordered ``(key, value)`` URL parameters.

    Filters come first, then paging, then order.  Nothing is emitted for
    settings left at server defaults.

    Args:
        query: The query to render.

    Returns:
        List of parameter pairs, suitable for ``httpx`` ``params``.
    """
    params: list[tuple[str, str]] = [("filter", f.render()) for f in query.filters]

    paging = query.paging
    if paging.enabled:
        if paging.has_page:
            params.append(("page", str(paging.page)))
        if paging.has_page_size:
            params.append(("pageSize", str(paging.page_size)))
    else:
        params.append(("paging", "false"))

    if query.order is not None:
        params.append(("order", query.order.render()))

    return params


def parse_query(params: Iterable[tuple[str, str]]) -> Query:
    """Rebuild a Query from rendered parameters.

    Keys the query builder does not own (``fields``, ``level`` ...) are
    ignored.
    """
    filters: list[Filter] = []
    enabled = True
    page: int | None = None
    page_size: int | None = None
    order: Order | None = None

    for key, value in params:
        if key == "filter":
            filters.append(Filter.parse(value))
        elif key == "paging":
            enabled = value.strip().lower() != "false"
        elif key == "page":
            page = int(value)
        elif key == "pageSize":
            page_size = int(value)
        elif key == "order":
            order = Order.parse(value)

    paging = Paging(page=page, page_size=page_size) if enabled else Paging.disabled()
    return Query(filters=tuple(filters), paging=paging, order=order)
