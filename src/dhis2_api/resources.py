"""Table-driven accessors for DHIS2 metadata resources.

Each resource is described once by a ``ResourceDescriptor`` (API path,
field-selection spec, response model) and served by the generic
``ResourceAccessor`` rather than a hand-written method per entity.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from dhis2_api.models import (
    Category,
    CategoryCombo,
    CategoryOption,
    CategoryOptionGroupSet,
    DataElement,
    DataElementGroup,
    DataElementGroupSet,
    Dhis2Model,
    MetadataDimension,
    ObjectResponse,
    ObjectsResponse,
    OrgUnit,
    OrgUnitGroup,
    OrgUnitGroupSet,
    OrgUnitLevel,
    PeriodType,
    Program,
    TableHook,
)
from dhis2_api.query import Query

if TYPE_CHECKING:
    from dhis2_api.client import Dhis2

ID_FIELDS = "id,code,name,created,lastUpdated"
NAME_FIELDS = f"{ID_FIELDS},shortName,description"
DATA_ELEMENT_FIELDS = f"{NAME_FIELDS},aggregationType,valueType,domainType,legendSets[{ID_FIELDS}]"
CATEGORY_FIELDS = f"{NAME_FIELDS},dataDimensionType,dataDimension"
ORG_UNIT_FIELDS = f"{NAME_FIELDS},path,level,parent[{ID_FIELDS}],openingDate,closedDate"

M = TypeVar("M", bound=Dhis2Model)


@dataclass(frozen=True)
class ResourceDescriptor(Generic[M]):
    """How to fetch one kind of metadata object.

    Attributes:
        path: API collection path, also the key of the list in responses.
        fields: Default ``fields`` selection.
        model: Pydantic model for each object.
        association_fields: Extra fields added when a query asks for
            associations to be expanded.
        writable: Whether save/update/remove are allowed.
    """

    path: str
    fields: str
    model: type[M]
    association_fields: str | None = None
    writable: bool = True

    def fields_for(self, query: Query) -> str:
        if query.expand_associations and self.association_fields:
            return f"{self.fields},{self.association_fields}"
        return self.fields


RESOURCES: dict[str, ResourceDescriptor] = {
    "org_units": ResourceDescriptor(
        "organisationUnits",
        ORG_UNIT_FIELDS,
        OrgUnit,
        association_fields=f"geometry,children[{ID_FIELDS}]",
    ),
    "org_unit_groups": ResourceDescriptor(
        "organisationUnitGroups",
        NAME_FIELDS,
        OrgUnitGroup,
        association_fields=f"organisationUnits[{ID_FIELDS}]",
    ),
    "org_unit_group_sets": ResourceDescriptor(
        "organisationUnitGroupSets",
        f"{NAME_FIELDS},compulsory",
        OrgUnitGroupSet,
        association_fields=f"organisationUnitGroups[{ID_FIELDS}]",
    ),
    "org_unit_levels": ResourceDescriptor(
        "organisationUnitLevels",
        f"{ID_FIELDS},level,offlineLevels",
        OrgUnitLevel,
        writable=False,
    ),
    "category_options": ResourceDescriptor(
        "categoryOptions",
        f"{NAME_FIELDS},startDate,endDate",
        CategoryOption,
    ),
    "categories": ResourceDescriptor(
        "categories",
        CATEGORY_FIELDS,
        Category,
        association_fields=f"categoryOptions[{NAME_FIELDS}]",
    ),
    "category_combos": ResourceDescriptor(
        "categoryCombos",
        f"{ID_FIELDS},dataDimensionType,skipTotal",
        CategoryCombo,
        association_fields=f"categories[{CATEGORY_FIELDS}]",
        writable=False,
    ),
    "category_option_group_sets": ResourceDescriptor(
        "categoryOptionGroupSets",
        f"{NAME_FIELDS},dataDimensionType",
        CategoryOptionGroupSet,
        association_fields=f"categoryOptionGroups[{NAME_FIELDS}]",
        writable=False,
    ),
    "data_elements": ResourceDescriptor(
        "dataElements",
        DATA_ELEMENT_FIELDS,
        DataElement,
        association_fields=f"categoryCombo[{ID_FIELDS}]",
    ),
    "data_element_groups": ResourceDescriptor(
        "dataElementGroups",
        NAME_FIELDS,
        DataElementGroup,
        association_fields=f"dataElements[{NAME_FIELDS}]",
    ),
    "data_element_group_sets": ResourceDescriptor(
        "dataElementGroupSets",
        NAME_FIELDS,
        DataElementGroupSet,
        association_fields=f"dataElementGroups[{NAME_FIELDS}]",
        writable=False,
    ),
    "programs": ResourceDescriptor(
        "programs",
        f"{NAME_FIELDS},programType",
        Program,
        association_fields=f"categoryCombo[{ID_FIELDS}],trackedEntityType[{ID_FIELDS}],programStages[{ID_FIELDS}]",
        writable=False,
    ),
    "table_hooks": ResourceDescriptor(
        "analyticsTableHooks",
        f"{ID_FIELDS},phase,resourceTableType,analyticsTableType,sql",
        TableHook,
    ),
    "dimensions": ResourceDescriptor(
        "dimensions",
        f"{ID_FIELDS},dimensionType,dataDimension",
        MetadataDimension,
        writable=False,
    ),
    "period_types": ResourceDescriptor(
        "periodTypes",
        "name,frequencyOrder,isoDuration,isoFormat",
        PeriodType,
        writable=False,
    ),
}


class ResourceAccessor(Generic[M]):
    """CRUD operations for one metadata resource."""

    def __init__(self, client: Dhis2, descriptor: ResourceDescriptor[M]) -> None:
        self._client = client
        self.descriptor = descriptor

    def __repr__(self) -> str:
        return f"ResourceAccessor({self.descriptor.path!r})"

    def get(self, uid: str) -> M:
        return self._client.get_object(
            self.descriptor.path,
            uid,
            self.descriptor.model,
            fields=self.descriptor.fields,
        )

    def list(self, query: Query | None = None) -> list[M]:
        query = query or Query()
        return self._client.get_objects(
            self.descriptor.path,
            query,
            self.descriptor.model,
            fields=self.descriptor.fields_for(query),
        )

    def save(self, obj: M) -> ObjectResponse:
        self._check_writable()
        return self._client.save_metadata_object(self.descriptor.path, obj)

    def save_all(self, objects: Sequence[M]) -> ObjectsResponse:
        self._check_writable()
        return self._client.save_metadata_objects(self.descriptor.path, objects)

    def update(self, obj: M) -> ObjectResponse:
        self._check_writable()
        uid = getattr(obj, "id", None)
        if not uid:
            raise ValueError(f"Cannot update {self.descriptor.path} object without an id")
        return self._client.update_metadata_object(self.descriptor.path, uid, obj)

    def remove(self, uid: str) -> ObjectResponse:
        self._check_writable()
        return self._client.remove_metadata_object(self.descriptor.path, uid)

    def _check_writable(self) -> None:
        if not self.descriptor.writable:
            raise TypeError(f"Resource '{self.descriptor.path}' is read-only")
