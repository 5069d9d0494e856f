"""Decoding of Azure Storage error responses.

Blob and queue services answer failures with an XML ``<Error>`` document,
the table service with an OData JSON envelope. Both decoders attach the HTTP
status code and the ``x-ms-request-id`` header value, which are not part of
the body.
"""

from enum import Enum
from typing import Callable, Dict
from xml.etree import ElementTree as ET
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from azstore.exceptions import (
    AzureStorageServiceError,
    DeserializationError,
    StructuredServiceError,
    TableServiceError,
)

logger = logging.getLogger(__name__)

# Inclusive range of status codes whose body is decoded as a service error
ERROR_STATUS_MIN = 400
ERROR_STATUS_MAX = 505

ServiceErrorDecoder = Callable[[bytes, int, str], StructuredServiceError]


class ErrorFormat(str, Enum):
    """Error response format."""

    XML = "xml"  # Blob, Queue
    JSON = "json"  # Table (OData)


# XML element name -> AzureStorageServiceError keyword
XML_ERROR_FIELDS: Dict[str, str] = {
    "Code": "code",
    "Message": "message",
    "AuthenticationErrorDetail": "authentication_error_detail",
    "QueryParameterName": "query_parameter_name",
    "QueryParameterValue": "query_parameter_value",
    "Reason": "reason",
}


class ODataErrorMessage(BaseModel):
    """Localized message of an OData error."""

    lang: str = ""
    value: str = ""


class ODataError(BaseModel):
    """Body of the "odata.error" member."""

    code: str = ""
    message: ODataErrorMessage = Field(default_factory=ODataErrorMessage)


class ODataErrorEnvelope(BaseModel):
    """Top-level table service error document."""

    model_config = ConfigDict(populate_by_name=True)

    error: ODataError = Field(default_factory=ODataError, alias="odata.error")


def is_error_status(status_code: int) -> bool:
    """Return True when a response body should be decoded as a service error."""
    return ERROR_STATUS_MIN <= status_code <= ERROR_STATUS_MAX


def service_error_from_xml(
    body: bytes, status_code: int, request_id: str
) -> AzureStorageServiceError:
    """Decode a blob/queue XML error body.

    Args:
        body: Raw response body
        status_code: HTTP status code of the response
        request_id: Value of the x-ms-request-id response header

    Returns:
        AzureStorageServiceError with the body fields plus status and request ID

    Raises:
        DeserializationError: If the body is not well-formed XML
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise DeserializationError(str(e), body) from e

    fields = {}
    for element_name, keyword in XML_ERROR_FIELDS.items():
        element = root.find(element_name)
        if element is not None and element.text:
            fields[keyword] = element.text

    return AzureStorageServiceError(
        status_code=status_code, request_id=request_id, **fields
    )


def table_error_from_json(
    body: bytes, status_code: int, request_id: str
) -> TableServiceError:
    """Decode a table service OData JSON error body.

    Args:
        body: Raw response body
        status_code: HTTP status code of the response
        request_id: Value of the x-ms-request-id response header

    Returns:
        TableServiceError with code, message language and text, status and request ID

    Raises:
        DeserializationError: If the body is malformed JSON or has the wrong shape
    """
    try:
        envelope = ODataErrorEnvelope.model_validate_json(body)
    except ValidationError as e:
        raise DeserializationError(str(e), body) from e

    odata_error = envelope.error
    return TableServiceError(
        code=odata_error.code,
        lang=odata_error.message.lang,
        value=odata_error.message.value,
        status_code=status_code,
        request_id=request_id,
    )


DECODERS: Dict[ErrorFormat, ServiceErrorDecoder] = {
    ErrorFormat.XML: service_error_from_xml,
    ErrorFormat.JSON: table_error_from_json,
}


def decoder_for(error_format: ErrorFormat) -> ServiceErrorDecoder:
    """Select the error decoder for a response format."""
    return DECODERS[ErrorFormat(error_format)]


def decode_error(
    body: bytes,
    status_code: int,
    request_id: str,
    error_format: ErrorFormat = ErrorFormat.XML,
) -> StructuredServiceError:
    """Decode an error body in the given format."""
    error = decoder_for(error_format)(body, status_code, request_id)
    logger.debug(
        f"Decoded service error: {error.code} "
        f"(status={status_code}, format={ErrorFormat(error_format).value})"
    )
    return error
