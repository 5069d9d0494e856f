"""Tests for SharedKeyLite signing."""

import base64
import copy

import pytest

from azstore.auth.sharedkey import (
    BlobQueueSigner,
    SharedKeyCredentials,
    TableSigner,
    build_authorization_header,
    compute_signature,
    parse_authorization_header,
)
from azstore.exceptions import (
    CanonicalizationError,
    InvalidAccountKeyError,
    InvalidAuthorizationHeaderError,
    ParameterError,
)

DATE = "Wed, 04 Jun 2014 16:18:20 GMT"
KEY = b"bar"


class TestSharedKeyCredentials:
    """Credentials decode the account key once."""

    def test_from_base64(self):
        """Test decoding of a valid key."""
        credentials = SharedKeyCredentials.from_base64("foo", "YmFy")

        assert credentials.account_name == "foo"
        assert credentials.account_key == b"bar"

    def test_empty_account_name(self):
        """Test that an empty account name is rejected."""
        with pytest.raises(ParameterError, match="accountName"):
            SharedKeyCredentials.from_base64("", "YmFy")

    def test_empty_account_key(self):
        """Test that an empty key is rejected."""
        with pytest.raises(ParameterError, match="accountKey"):
            SharedKeyCredentials.from_base64("foo", "")

    def test_invalid_base64_key(self):
        """Test that an undecodable key is rejected."""
        with pytest.raises(InvalidAccountKeyError):
            SharedKeyCredentials.from_base64("foo", "not base64!")

    def test_immutable_and_key_hidden(self):
        """Test that credentials are frozen and repr hides the key."""
        credentials = SharedKeyCredentials.from_base64("foo", "YmFy")

        with pytest.raises(AttributeError):
            credentials.account_name = "other"
        assert "bar" not in repr(credentials)


class TestTableSigner:
    """Table string-to-sign is x-ms-date and canonical resource."""

    def test_string_to_sign(self):
        """Test the exact two-line layout."""
        signer = TableSigner("foo")
        headers = {
            "x-ms-date": DATE,
            "x-ms-version": "2014-02-14",
            "Content-Type": "application/json",
        }

        result = signer.string_to_sign("POST", headers, "https://foo.table.core.windows.net/Tables")

        assert result == f"{DATE}\n/foo/Tables"

    def test_missing_date(self):
        """Test that a missing x-ms-date gives an empty first line."""
        signer = TableSigner("foo")

        assert signer.string_to_sign("GET", {}, "/Tables") == "\n/foo/Tables"

    def test_entity_resource(self):
        """Test that entity key syntax is escaped in the resource line."""
        signer = TableSigner("foo")
        url = "https://foo.table.core.windows.net/people(PartitionKey='pk',RowKey='rk')"

        result = signer.string_to_sign("GET", {"x-ms-date": DATE}, url)

        assert result == (
            f"{DATE}\n/foo/people%28PartitionKey=%27pk%27,RowKey=%27rk%27%29"
        )


class TestBlobQueueSigner:
    """Blob/queue string-to-sign has fixed header positions."""

    def test_string_to_sign_all_fields(self):
        """Test the layout with every positional header present."""
        signer = BlobQueueSigner("foo")
        headers = {
            "Content-MD5": "md5",
            "Content-Type": "text/plain",
            "Date": DATE,
            "x-ms-version": "2014-02-14",
        }
        url = "https://foo.blob.core.windows.net/cnt/blob?comp=metadata&timeout=5"

        result = signer.string_to_sign("PUT", headers, url)

        assert result == (
            "PUT\nmd5\ntext/plain\n" + DATE + "\nx-ms-version:2014-02-14\n"
            "/foo/cnt/blob?comp=metadata"
        )

    def test_missing_headers_are_empty_lines(self):
        """Test that absent positional headers keep their line."""
        signer = BlobQueueSigner("foo")
        headers = {"x-ms-date": DATE, "x-ms-version": "2014-02-14"}

        result = signer.string_to_sign("GET", headers, "/cnt")

        assert result == (
            f"GET\n\n\n\nx-ms-date:{DATE}\nx-ms-version:2014-02-14\n/foo/cnt"
        )
        assert len(result.split("\n")) == 7

    def test_no_ms_headers(self):
        """Test that an empty canonical header block adds no line."""
        signer = BlobQueueSigner("foo")

        assert signer.string_to_sign("GET", {}, "/cnt") == "GET\n\n\n\n/foo/cnt"

    def test_verb_signed_as_given(self):
        """Test that the verb is copied into the string-to-sign unchanged."""
        signer = BlobQueueSigner("foo")

        assert signer.string_to_sign("get", {}, "/cnt") == "get\n\n\n\n/foo/cnt"

    def test_positional_headers_case_insensitive(self):
        """Test lookup of positional headers regardless of case."""
        signer = BlobQueueSigner("foo")
        headers = {"content-type": "text/plain", "x-ms-date": DATE}

        result = signer.string_to_sign("PUT", headers, "/cnt")

        assert result.split("\n")[2] == "text/plain"

    def test_canonicalize_parts(self):
        """Test that canonicalize exposes its intermediate strings."""
        signer = BlobQueueSigner("foo")

        result = signer.canonicalize("GET", {"x-ms-date": DATE}, "/?comp=list")

        assert result.canonical_headers == f"x-ms-date:{DATE}"
        assert result.canonical_resource == "/foo/?comp=list"
        assert result.string_to_sign.endswith(result.canonical_resource)


class TestSign:
    """Authorization values."""

    def test_authorization_value(self):
        """Test scheme, account and signature of a signed request."""
        signer = TableSigner("foo")
        headers = {"x-ms-date": DATE}

        value = signer.sign("GET", headers, "/Tables", KEY)

        expected = compute_signature(f"{DATE}\n/foo/Tables", KEY)
        assert value == f"SharedKeyLite foo:{expected}"

    def test_sign_is_idempotent(self):
        """Test that identical inputs give identical signatures."""
        signer = BlobQueueSigner("foo")
        headers = {"x-ms-date": DATE, "x-ms-version": "2014-02-14"}

        first = signer.sign("GET", headers, "/cnt?comp=list", KEY)
        second = signer.sign("GET", headers, "/cnt?comp=list", KEY)

        assert first == second

    def test_sign_does_not_mutate_headers(self):
        """Test that signing leaves the header map unchanged."""
        signer = BlobQueueSigner("foo")
        headers = {"x-ms-date": DATE, "Content-Type": "text/plain"}
        before = copy.deepcopy(headers)

        signer.sign("PUT", headers, "/cnt", KEY)

        assert headers == before

    def test_different_keys_differ(self):
        """Test that the signature depends on the key."""
        signer = TableSigner("foo")
        headers = {"x-ms-date": DATE}

        assert signer.sign("GET", headers, "/Tables", b"a") != signer.sign(
            "GET", headers, "/Tables", b"b"
        )

    def test_malformed_query_aborts(self):
        """Test that canonicalization errors surface from sign."""
        signer = TableSigner("foo")

        with pytest.raises(CanonicalizationError):
            signer.sign("GET", {"x-ms-date": DATE}, "/Tables?comp=%g1", KEY)


class TestComputeSignature:
    """HMAC-SHA256 signature computation."""

    def test_rfc4231_vector(self):
        """Test against RFC 4231 test case 2."""
        expected_hex = "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"

        signature = compute_signature("what do ya want for nothing?", b"Jefe")

        assert signature == base64.b64encode(bytes.fromhex(expected_hex)).decode("utf-8")


class TestAuthorizationHeader:
    """Formatting and parsing Authorization values."""

    def test_round_trip(self):
        """Test that a built header parses back into its parts."""
        value = build_authorization_header("SharedKeyLite", "foo", "c2lnPQ==")

        assert parse_authorization_header(value) == ("SharedKeyLite", "foo", "c2lnPQ==")

    @pytest.mark.parametrize("value", [
        "",
        "SharedKeyLite",
        "Bearer foo:sig",
        "SharedKeyLite foo",
        "SharedKeyLite :sig",
        "SharedKeyLite foo:",
    ])
    def test_malformed(self, value):
        """Test rejection of malformed header values."""
        with pytest.raises(InvalidAuthorizationHeaderError):
            parse_authorization_header(value)
