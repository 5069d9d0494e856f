"""
Table entity serialization.

A table entity is sent to the table service as a flat JSON object holding
``PartitionKey``, ``RowKey``, scalar properties and optional
``<Property>@odata.type`` sidecar entries for non-string EDM types.

Three input shapes are supported:

- :class:`MapTableEntity`: free-form mapping of property names to JSON literals
- :class:`StructTableEntity`: an instance of a record type registered with
  :func:`table_entity`, whose field descriptors carry serialized names and
  EDM type annotations
- :class:`MarshaledTableEntity`: a value that renders its own JSON

Example:
    @table_entity(
        EntityField("name", serialized_name="name"),
        EntityField("student_id", serialized_name="id", odata_type=EdmType.GUID),
    )
    @dataclass
    class Student:
        PartitionKey: str
        RowKey: str
        name: str
        student_id: str

    body = StructTableEntity(Student("pk", "rk", "Ada", "c9da6455-...")).serialize()
"""

import base64
import dataclasses
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple, Union

from pydantic_core import to_jsonable_python

from azstore.exceptions import InvalidEntityError, ParameterError, SerializationError

logger = logging.getLogger(__name__)

ODATA_TYPE_SUFFIX = "@odata.type"


class EdmType(str, Enum):
    """Entity Data Model type names understood by the table service."""
    BINARY = "Edm.Binary"
    BOOLEAN = "Edm.Boolean"
    DATETIME = "Edm.DateTime"
    DOUBLE = "Edm.Double"
    GUID = "Edm.Guid"
    INT32 = "Edm.Int32"
    INT64 = "Edm.Int64"
    STRING = "Edm.String"


def odata_type_key(property_name: str) -> str:
    """Name of the sidecar entry holding a property's EDM type."""
    return f"{property_name}{ODATA_TYPE_SUFFIX}"


def _encode_value(value: Any) -> Any:
    """
    ``default`` hook of the entity JSON encoder.

    Datetimes become RFC 3339 timestamps in UTC (naive values are taken as
    UTC), bytes become base64 as Edm.Binary expects, and anything else
    pydantic can render as a JSON scalar (UUID, Decimal, date) is accepted.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()[:-6] + "Z"

    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")

    encoded = to_jsonable_python(value)
    if isinstance(encoded, (dict, list)):
        raise TypeError(f"Object of type {type(value).__name__} is not a JSON literal")
    return encoded


def _dump(values: Mapping[str, Any]) -> bytes:
    """Serialize a flat mapping with sorted keys and tab indentation."""
    for key, value in values.items():
        if isinstance(value, (dict, list, tuple)):
            raise SerializationError(
                f"storage: entity property {key!r} is not a JSON literal value"
            )

    try:
        text = json.dumps(
            values,
            sort_keys=True,
            indent="\t",
            ensure_ascii=False,
            allow_nan=False,
            default=_encode_value,
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f"storage: cannot serialize entity: {e}") from e

    return text.encode("utf-8")


class TableEntity(ABC):
    """Input accepted by operations that send entity data to the table service."""

    @abstractmethod
    def serialize(self) -> bytes:
        """
        Render the entity as the JSON request body.

        Raises:
            SerializationError: If the entity cannot be rendered
        """


class MapTableEntity(TableEntity):
    """
    Table entity given as a free-form mapping.

    Values must be JSON literals, not objects or arrays. EDM types are given
    as explicit sidecar keys.

    Example:
        MapTableEntity({
            "PartitionKey": "mypartitionkey",
            "RowKey": "myrowkey",
            "Address": "Mountain View",
            "Age@odata.type": "Edm.Int64",
            "Age": "255",
        })
    """

    def __init__(self, values: Mapping[str, Any]):
        self.values = dict(values)

    def serialize(self) -> bytes:
        return _dump(self.values)

    def __repr__(self) -> str:
        return f"MapTableEntity({self.values!r})"


@dataclass(frozen=True)
class EntityField:
    """Descriptor of one field of a structured record type."""

    name: str
    serialized_name: Optional[str] = None
    odata_type: Optional[Union[EdmType, str]] = None

    @property
    def resolved_name(self) -> str:
        """Property name used on the wire."""
        return self.serialized_name or self.name


class EntitySchema:
    """Ordered field descriptors of a registered record type."""

    def __init__(self, record_type: type, fields: Iterable[EntityField]):
        self.record_type = record_type
        self.fields: Tuple[EntityField, ...] = tuple(fields)

        seen: Dict[str, str] = {}
        for f in self.fields:
            if f.resolved_name in seen:
                raise ValueError(
                    f"{record_type.__name__}: fields {seen[f.resolved_name]!r} and "
                    f"{f.name!r} both serialize as {f.resolved_name!r}"
                )
            seen[f.resolved_name] = f.name

    def to_values(self, record: Any) -> Dict[str, Any]:
        """
        Map a record to serialized-name -> value.

        Raises:
            InvalidEntityError: If the record lacks a described field
        """
        values = {}
        for f in self.fields:
            try:
                values[f.resolved_name] = getattr(record, f.name)
            except AttributeError as e:
                raise InvalidEntityError(
                    f"storage: {type(record).__name__} record has no field {f.name!r}"
                ) from e
        return values

    def odata_types(self) -> Dict[str, str]:
        """Sidecar entries for the annotated fields."""
        types = {}
        for f in self.fields:
            if not f.odata_type:
                continue
            odata_type = f.odata_type
            if isinstance(odata_type, EdmType):
                odata_type = odata_type.value
            types[odata_type_key(f.resolved_name)] = odata_type
        return types


_schemas: Dict[type, EntitySchema] = {}


def register_entity_schema(record_type: type, *fields: EntityField) -> EntitySchema:
    """
    Register the field descriptors of a record type.

    For dataclasses, every dataclass field is included in declaration order
    and ``fields`` only needs to describe the ones with a serialized name or
    an EDM type. For any other type, ``fields`` must list every field.

    Raises:
        ValueError: If a descriptor names an unknown dataclass field, or two
            fields serialize to the same name
    """
    described = {f.name: f for f in fields}

    if dataclasses.is_dataclass(record_type):
        names = [f.name for f in dataclasses.fields(record_type)]
        unknown = set(described) - set(names)
        if unknown:
            raise ValueError(
                f"{record_type.__name__} has no fields named {sorted(unknown)}"
            )
        ordered = [described.get(name, EntityField(name)) for name in names]
    else:
        ordered = list(fields)

    schema = EntitySchema(record_type, ordered)
    _schemas[record_type] = schema
    logger.debug(f"Registered table entity schema for {record_type.__name__}")
    return schema


def table_entity(*fields: EntityField):
    """Class decorator form of :func:`register_entity_schema`."""
    def register(cls: type) -> type:
        register_entity_schema(cls, *fields)
        return cls
    return register


def get_entity_schema(record_type: type) -> Optional[EntitySchema]:
    """Return the schema registered for a record type or its nearest registered base."""
    for klass in record_type.__mro__:
        schema = _schemas.get(klass)
        if schema is not None:
            return schema
    return None


class StructTableEntity(TableEntity):
    """
    Table entity given as an instance of a registered record type.

    The record is serialized by its serialized field names, read back as a
    mapping, extended with ``<name>@odata.type`` entries for fields carrying
    an EDM type and serialized again.
    """

    def __init__(self, value: Any):
        self.value = value

    def serialize(self) -> bytes:
        if self.value is None:
            raise InvalidEntityError(
                "storage: struct value for given StructTableEntity is None"
            )

        schema = get_entity_schema(type(self.value))
        if schema is None:
            raise InvalidEntityError(
                "storage: value given to StructTableEntity is not a registered "
                f"table entity record: {type(self.value).__name__}"
            )

        # Step 1: serialize by serialized field names
        first_pass = _dump(schema.to_values(self.value))

        # Step 2: back to a generic mapping
        values = json.loads(first_pass)

        # Step 3: merge the EDM type sidecars
        values.update(schema.odata_types())

        # Step 4: final rendering
        return _dump(values)

    def __repr__(self) -> str:
        return f"StructTableEntity({self.value!r})"


class JSONMarshaler(Protocol):
    """Value that renders its own JSON."""

    def to_json(self) -> Union[bytes, str]:
        ...


class MarshaledTableEntity(TableEntity):
    """Table entity whose value renders its own JSON; output is sent as is."""

    def __init__(self, value: JSONMarshaler):
        self.value = value

    def serialize(self) -> bytes:
        try:
            rendered = self.value.to_json()
        except (TypeError, ValueError) as e:
            raise SerializationError(f"storage: cannot serialize entity: {e}") from e

        if isinstance(rendered, str):
            return rendered.encode("utf-8")
        return rendered

    def __repr__(self) -> str:
        return f"MarshaledTableEntity({self.value!r})"


def serialize_entity(entity: Optional[TableEntity]) -> bytes:
    """
    Serialize any table entity variant.

    Raises:
        ParameterError: If entity is None
        SerializationError: If the entity cannot be rendered
    """
    if entity is None:
        raise ParameterError("entity")
    return entity.serialize()
