"""
Azure Table Storage service client.

Implements table and entity operations over the OData JSON protocol with
no metadata returned.

Reference: https://docs.microsoft.com/rest/api/storageservices/table-service-rest-api
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from azstore.auth.sharedkey import TableSigner
from azstore.core.client import (
    TABLE_SERVICE_NAME,
    Body,
    StorageClient,
    StorageResponse,
    check_response_code,
)
from azstore.core.error_decoder import table_error_from_json
from azstore.exceptions import DeserializationError, ParameterError, SerializationError
from azstore.services.table.entity import TableEntity, serialize_entity
from azstore.services.table.models import CreateTableParameters, QueryTablesResponse

logger = logging.getLogger(__name__)

ACCEPT_KEY = "Accept"
NO_METADATA_HEADER = "application/json;odata=nometadata"
JSON_CONTENT_TYPE = "application/json"


def _odata_literal(value: str) -> str:
    """Quote a string as an OData key literal."""
    return "'" + value.replace("'", "''") + "'"


def _require(**params: Optional[str]) -> None:
    """Raise ParameterError for the first empty argument."""
    for name, value in params.items():
        if not value:
            raise ParameterError(name)


class TableServiceClient:
    """
    Operations of the table service of a storage account.

    Example:
        tables = StorageClient.basic("myaccount", key).get_table_service()
        tables.create_table(CreateTableParameters(TableName="people"))
        tables.insert_entity("people", MapTableEntity({...}))
    """

    def __init__(self, client: StorageClient):
        self.client = client
        self.signer = TableSigner(client.account_name)

    def _exec(
        self, verb: str, url: str, headers: Mapping[str, str], body: Body = None
    ) -> StorageResponse:
        return self.client.exec(verb, url, headers, body, self.signer, table_error_from_json)

    def _base_headers(self) -> Dict[str, str]:
        headers = self.client.get_standard_headers()
        headers[ACCEPT_KEY] = NO_METADATA_HEADER
        return headers

    def _entity_path(self, table_name: str, partition_key: str, row_key: str) -> str:
        return (
            f"{table_name}(PartitionKey={_odata_literal(partition_key)},"
            f"RowKey={_odata_literal(row_key)})"
        )

    def query_tables(self) -> QueryTablesResponse:
        """
        List the tables of the storage account.

        Returns:
            QueryTablesResponse with one item per table
        """
        url = self.client.get_endpoint(TABLE_SERVICE_NAME, "/Tables")

        with self._exec("GET", url, self._base_headers()) as resp:
            check_response_code(resp.status_code, [200])
            body = resp.read()

        try:
            return QueryTablesResponse.model_validate_json(body)
        except ValidationError as e:
            raise DeserializationError(str(e), body) from e

    def create_table(self, params: CreateTableParameters) -> None:
        """
        Create a new table in the storage account.

        Raises:
            TableServiceError: e.g. TableAlreadyExists (409)
            UnexpectedStatusError: If the service answers neither 201 nor 204
        """
        url = self.client.get_endpoint(TABLE_SERVICE_NAME, "Tables")
        headers = self._base_headers()
        headers["Content-Type"] = JSON_CONTENT_TYPE

        body = params.model_dump_json()

        with self._exec("POST", url, headers, body) as resp:
            check_response_code(resp.status_code, [201, 204])
        logger.info(f"Created table {params.TableName}")

    def delete_table(self, table_name: str) -> None:
        """
        Delete a table and all of its data.

        Raises:
            ParameterError: If table_name is empty
            TableServiceError: e.g. ResourceNotFound (404)
            UnexpectedStatusError: If the service does not answer 204
        """
        _require(tableName=table_name)

        path = f"Tables({_odata_literal(table_name)})"
        url = self.client.get_endpoint(TABLE_SERVICE_NAME, path)

        with self._exec("DELETE", url, self._base_headers()) as resp:
            check_response_code(resp.status_code, [204])
        logger.info(f"Deleted table {table_name}")

    def insert_entity(self, table_name: str, entity: Optional[TableEntity]) -> None:
        """
        Insert a new entity into a table.

        Raises:
            ParameterError: If table_name is empty or entity is None
            SerializationError: If the entity cannot be rendered as JSON
            TableServiceError: e.g. EntityAlreadyExists (409)
            UnexpectedStatusError: If the service answers neither 201 nor 204
        """
        _require(tableName=table_name)
        body = serialize_entity(entity)

        url = self.client.get_endpoint(TABLE_SERVICE_NAME, table_name)
        headers = self._base_headers()
        headers["Content-Type"] = JSON_CONTENT_TYPE

        with self._exec("POST", url, headers, body) as resp:
            check_response_code(resp.status_code, [201, 204])

    def query_entity(self, table_name: str, partition_key: str, row_key: str) -> Dict[str, Any]:
        """
        Fetch a single entity.

        Returns:
            The entity's properties as returned by the service

        Raises:
            ParameterError: If any argument is empty
            TableServiceError: e.g. ResourceNotFound (404)
            UnexpectedStatusError: If the service does not answer 200
            SerializationError: If the response body is not a JSON object
        """
        _require(tableName=table_name, partitionKey=partition_key, rowKey=row_key)

        path = self._entity_path(table_name, partition_key, row_key)
        url = self.client.get_endpoint(TABLE_SERVICE_NAME, path)
        headers = self._base_headers()
        headers["Content-Type"] = JSON_CONTENT_TYPE

        with self._exec("GET", url, headers) as resp:
            check_response_code(resp.status_code, [200])
            body = resp.read()

        try:
            entity = json.loads(body)
        except ValueError as e:
            raise SerializationError(f"storage: cannot parse entity: {e}") from e
        if not isinstance(entity, dict):
            raise SerializationError("storage: entity response is not a JSON object")
        return entity

    def delete_entity(self, table_name: str, partition_key: str, row_key: str) -> None:
        """
        Delete an entity regardless of its ETag.

        Raises:
            ParameterError: If any argument is empty
            TableServiceError: e.g. ResourceNotFound (404)
            UnexpectedStatusError: If the service does not answer 204
        """
        _require(tableName=table_name, partitionKey=partition_key, rowKey=row_key)

        path = self._entity_path(table_name, partition_key, row_key)
        url = self.client.get_endpoint(TABLE_SERVICE_NAME, path)
        headers = self._base_headers()
        headers["If-Match"] = "*"

        with self._exec("DELETE", url, headers) as resp:
            check_response_code(resp.status_code, [204])
