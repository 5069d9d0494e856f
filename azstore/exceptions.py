"""
Exceptions raised by the azstore client.

Author: azstore Team
Date: 2026-10-17
"""

from http import HTTPStatus
from typing import Iterable, List, Optional


def _status_text(code: int) -> str:
    """Render a status code as '<code> <reason phrase>'."""
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return str(code)


class StorageError(Exception):
    """Base exception for all storage client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ParameterError(StorageError, ValueError):
    """Raised when a required argument is empty."""

    def __init__(self, parameter: str):
        self.parameter = parameter
        super().__init__(f"storage: parameter is empty: {parameter}")


class InvalidAccountKeyError(ParameterError):
    """Raised when the account key is not valid base64."""

    def __init__(self, reason: str):
        super().__init__("accountKey")
        self.message = f"storage: account key is not valid base64: {reason}"
        self.args = (self.message,)


class SerializationError(StorageError):
    """Raised when a table entity cannot be turned into JSON."""


class InvalidEntityError(SerializationError):
    """Raised when a structured entity is absent or not a registered record."""


class CanonicalizationError(StorageError):
    """Raised when a request cannot be canonicalized for signing."""


class InvalidAuthorizationHeaderError(StorageError):
    """Raised when an Authorization header value is malformed."""


class DeserializationError(StorageError):
    """Raised when a service error body cannot be decoded."""

    def __init__(self, reason: str, body: bytes):
        self.body = body
        super().__init__(
            f"storage: error deserializing error: {reason}\nbody={body!r}"
        )


class UnexpectedStatusError(StorageError):
    """Raised when the service answers with neither an error nor an allowed status."""

    def __init__(self, allowed: Iterable[int], got: int):
        self.allowed: List[int] = list(allowed)
        self.got = got
        expected = " or ".join(_status_text(code) for code in self.allowed)
        super().__init__(
            f"storage: status code from service response is {_status_text(got)}; "
            f"was expecting {expected}"
        )


class EmptyResponseBodyError(StorageError):
    """Raised when an error status arrives without a body to decode."""

    def __init__(self, status_code: int, reason: Optional[str] = None):
        self.status_code = status_code
        status = f"{status_code} {reason}" if reason else _status_text(status_code)
        super().__init__(
            f"storage: service returned without a response body ({status})"
        )


class StructuredServiceError(StorageError):
    """
    Well-formed error response returned by a storage service.

    Callers branch on ``code`` and ``status_code``.
    """

    def __init__(self, message: str, code: str, status_code: int, request_id: str):
        self.code = code
        self.status_code = status_code
        self.request_id = request_id
        super().__init__(message)


class AzureStorageServiceError(StructuredServiceError):
    """Error returned by the blob and queue services (XML body)."""

    def __init__(
        self,
        code: str = "",
        message: str = "",
        authentication_error_detail: str = "",
        query_parameter_name: str = "",
        query_parameter_value: str = "",
        reason: str = "",
        status_code: int = 0,
        request_id: str = "",
    ):
        self.authentication_error_detail = authentication_error_detail
        self.query_parameter_name = query_parameter_name
        self.query_parameter_value = query_parameter_value
        self.reason = reason
        super().__init__(
            f"storage: service returned error: StatusCode={status_code}, "
            f"ErrorCode={code}, ErrorMessage={message}, RequestId={request_id}",
            code=code,
            status_code=status_code,
            request_id=request_id,
        )
        # The decoded <Message> text; str(self) keeps the rendered summary
        self.message = message


class TableServiceError(StructuredServiceError):
    """Error returned by the table service (OData JSON body)."""

    def __init__(
        self,
        code: str = "",
        lang: str = "",
        value: str = "",
        status_code: int = 0,
        request_id: str = "",
    ):
        self.lang = lang
        self.value = value
        super().__init__(
            f"storage: table service returned error: StatusCode={status_code} "
            f"ErrorCode={code} ErrorMessage={value!r}",
            code=code,
            status_code=status_code,
            request_id=request_id,
        )
