"""
Azure Table Storage service client.

This module provides table and entity operations and the entity
serialization used to build request bodies.
"""

from azstore.services.table.client import TableServiceClient
from azstore.services.table.entity import (
    EdmType,
    EntityField,
    EntitySchema,
    MapTableEntity,
    MarshaledTableEntity,
    StructTableEntity,
    TableEntity,
    register_entity_schema,
    serialize_entity,
    table_entity,
)
from azstore.services.table.models import (
    CreateTableParameters,
    QueryTablesResponse,
    TableItem,
)

__all__ = [
    "TableServiceClient",
    "EdmType",
    "EntityField",
    "EntitySchema",
    "MapTableEntity",
    "MarshaledTableEntity",
    "StructTableEntity",
    "TableEntity",
    "register_entity_schema",
    "serialize_entity",
    "table_entity",
    "CreateTableParameters",
    "QueryTablesResponse",
    "TableItem",
]
