"""Tests for service error decoding."""

import pytest

from azstore.core.error_decoder import (
    ErrorFormat,
    decode_error,
    decoder_for,
    is_error_status,
    service_error_from_xml,
    table_error_from_json,
)
from azstore.exceptions import (
    AzureStorageServiceError,
    DeserializationError,
    StructuredServiceError,
    TableServiceError,
)

TABLE_NOT_FOUND_MESSAGE = (
    "The specified resource does not exist.\n"
    "RequestId:102a2b55-eb35-4254-9daf-854db78a47bd\n"
    "Time:2014-06-04T16:18:20.4307735Z"
)


class TestXMLDecoder:
    """Blob/queue XML error documents."""

    def test_code_and_message(self):
        """Test decoding of a minimal error document."""
        body = b"""<?xml version="1.0" encoding="utf-8"?>
<Error>
  <Code>code-value</Code>
  <Message>message-value</Message>
</Error>"""

        error = service_error_from_xml(body, 400, "foo")

        assert isinstance(error, AzureStorageServiceError)
        assert error.status_code == 400
        assert error.code == "code-value"
        assert error.message == "message-value"
        assert error.request_id == "foo"
        assert error.authentication_error_detail == ""
        assert error.reason == ""

    def test_all_fields(self):
        """Test decoding of every optional element."""
        body = (
            b"<Error><Code>InvalidQueryParameterValue</Code>"
            b"<Message>Value for one of the query parameters is not valid.</Message>"
            b"<AuthenticationErrorDetail>detail</AuthenticationErrorDetail>"
            b"<QueryParameterName>timeout</QueryParameterName>"
            b"<QueryParameterValue>-1</QueryParameterValue>"
            b"<Reason>out of range</Reason></Error>"
        )

        error = service_error_from_xml(body, 400, "req-1")

        assert error.code == "InvalidQueryParameterValue"
        assert error.authentication_error_detail == "detail"
        assert error.query_parameter_name == "timeout"
        assert error.query_parameter_value == "-1"
        assert error.reason == "out of range"

    def test_error_message_text(self):
        """Test the rendered exception message."""
        body = b"<Error><Code>ContainerNotFound</Code><Message>gone</Message></Error>"

        error = service_error_from_xml(body, 404, "abc")

        assert str(error) == (
            "storage: service returned error: StatusCode=404, "
            "ErrorCode=ContainerNotFound, ErrorMessage=gone, RequestId=abc"
        )
        assert error.message == "gone"
        assert error.args == (str(error),)

    def test_malformed_xml(self):
        """Test that a broken document raises with the raw body attached."""
        body = b"<Error><Code>oops</Error>"

        with pytest.raises(DeserializationError) as exc_info:
            service_error_from_xml(body, 500, "foo")

        assert exc_info.value.body == body
        assert "oops" in str(exc_info.value)


class TestJSONDecoder:
    """Table OData JSON error documents."""

    def test_resource_not_found(self):
        """Test decoding of an OData error envelope."""
        body = (
            b'{"odata.error":{"code":"ResourceNotFound","message":{"lang":"en-US",'
            b'"value":"The specified resource does not exist.\\nRequestId:102a2b55-eb35-4254-9daf-854db78a47bd'
            b'\\nTime:2014-06-04T16:18:20.4307735Z"}}}'
        )

        error = table_error_from_json(body, 404, "foo")

        assert isinstance(error, TableServiceError)
        assert error.status_code == 404
        assert error.request_id == "foo"
        assert error.code == "ResourceNotFound"
        assert error.lang == "en-US"
        assert error.value == TABLE_NOT_FOUND_MESSAGE

    def test_missing_envelope(self):
        """Test that a JSON object without odata.error gives empty fields."""
        error = table_error_from_json(b"{}", 400, "foo")

        assert error.code == ""
        assert error.lang == ""
        assert error.value == ""
        assert error.status_code == 400

    @pytest.mark.parametrize("body", [b"{", b"[]", b"not json", b'{"odata.error": 5}'])
    def test_malformed_json(self, body):
        """Test that malformed documents raise with the raw body attached."""
        with pytest.raises(DeserializationError) as exc_info:
            table_error_from_json(body, 500, "foo")

        assert exc_info.value.body == body


class TestDecoderSelection:
    """Decoder selection and the error status range."""

    def test_decoder_for(self):
        """Test selection by format."""
        assert decoder_for(ErrorFormat.XML) is service_error_from_xml
        assert decoder_for(ErrorFormat.JSON) is table_error_from_json
        assert decoder_for("json") is table_error_from_json

    def test_decode_error(self):
        """Test the format-dispatching entry point."""
        error = decode_error(
            b'{"odata.error":{"code":"TableNotFound","message":{"lang":"en-US","value":"x"}}}',
            404,
            "foo",
            ErrorFormat.JSON,
        )

        assert isinstance(error, StructuredServiceError)
        assert error.code == "TableNotFound"

    @pytest.mark.parametrize("status,expected", [
        (200, False),
        (304, False),
        (399, False),
        (400, True),
        (404, True),
        (505, True),
        (506, False),
    ])
    def test_is_error_status(self, status, expected):
        """Test the inclusive [400, 505] range."""
        assert is_error_status(status) is expected
