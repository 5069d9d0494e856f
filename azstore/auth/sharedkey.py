"""
SharedKeyLite request signing for Azure Storage services.

Two signer variants share the header/resource canonicalization in
:mod:`azstore.auth.canonicalizer` and differ in how the string-to-sign is
composed:

- Blob/Queue: VERB, Content-MD5, Content-Type, Date, canonical headers,
  canonical resource
- Table: x-ms-date, canonical resource

Reference: https://docs.microsoft.com/en-us/rest/api/storageservices/authorize-with-shared-key

Author: azstore Team
Date: 2026-10-17
"""

import base64
import binascii
import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Mapping, Tuple

from azstore.auth.canonicalizer import canonical_header, canonical_resource
from azstore.exceptions import (
    InvalidAccountKeyError,
    InvalidAuthorizationHeaderError,
    ParameterError,
)

logger = logging.getLogger(__name__)

SHARED_KEY_LITE = "SharedKeyLite"


@dataclass(frozen=True)
class SharedKeyCredentials:
    """Account name and raw (decoded) account key."""

    account_name: str
    account_key: bytes = field(repr=False)

    @classmethod
    def from_base64(cls, account_name: str, account_key: str) -> "SharedKeyCredentials":
        """
        Build credentials from a base64-encoded account key.

        Args:
            account_name: Storage account name
            account_key: Base64-encoded account key

        Returns:
            SharedKeyCredentials holding the decoded key

        Raises:
            ParameterError: If the name or key is empty
            InvalidAccountKeyError: If the key is not valid base64
        """
        if not account_name:
            raise ParameterError("accountName")
        if not account_key:
            raise ParameterError("accountKey")

        try:
            key_bytes = base64.b64decode(account_key, validate=True)
        except binascii.Error as e:
            raise InvalidAccountKeyError(str(e)) from e

        return cls(account_name=account_name, account_key=key_bytes)


@dataclass
class CanonicalizedRequest:
    """Result of request canonicalization."""

    string_to_sign: str
    canonical_headers: str
    canonical_resource: str


def _get_header(headers: Mapping[str, str], name: str) -> str:
    """Case-insensitive header lookup, empty string when absent."""
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return str(value) if value else ""
    return ""


class RequestSigner(ABC):
    """
    Turns a request description into a SharedKeyLite authorization value.

    Signers hold only the account name; the key is passed to :meth:`sign`
    so the same signer can be shared across threads.
    """

    auth_scheme: str = SHARED_KEY_LITE

    def __init__(self, account_name: str):
        self.account_name = account_name

    def canonicalize(
        self, verb: str, headers: Mapping[str, str], url: str
    ) -> CanonicalizedRequest:
        """
        Canonicalize a request for signing.

        Raises:
            CanonicalizationError: If the URL query string is malformed
        """
        headers_part = canonical_header(headers)
        resource_part = canonical_resource(self.account_name, url)
        return CanonicalizedRequest(
            string_to_sign=self._compose(verb, headers, headers_part, resource_part),
            canonical_headers=headers_part,
            canonical_resource=resource_part,
        )

    def string_to_sign(self, verb: str, headers: Mapping[str, str], url: str) -> str:
        """Build the exact string that gets hashed."""
        return self.canonicalize(verb, headers, url).string_to_sign

    @abstractmethod
    def _compose(
        self,
        verb: str,
        headers: Mapping[str, str],
        canonical_headers: str,
        canonical_resource: str,
    ) -> str:
        """Combine the canonical parts into the string-to-sign."""

    def sign(
        self, verb: str, headers: Mapping[str, str], url: str, account_key: bytes
    ) -> str:
        """
        Compute the Authorization header value for a request.

        Args:
            verb: HTTP method
            headers: Request headers (not modified)
            url: Full request URL
            account_key: Raw (decoded) account key

        Returns:
            "<scheme> <account>:<signature>"

        Raises:
            CanonicalizationError: If the request cannot be canonicalized
        """
        string_to_sign = self.string_to_sign(verb, headers, url)
        logger.debug(
            f"Signing {verb} request for account {self.account_name} "
            f"with {self.auth_scheme}"
        )
        signature = compute_signature(string_to_sign, account_key)
        return build_authorization_header(self.auth_scheme, self.account_name, signature)


class BlobQueueSigner(RequestSigner):
    """
    Signer for the blob and queue services.

    Format:
        VERB\\n
        Content-MD5\\n
        Content-Type\\n
        Date\\n
        CanonicalizedHeaders\\n
        CanonicalizedResource
    """

    def _compose(self, verb, headers, canonical_headers, canonical_resource):
        parts = [
            verb,
            _get_header(headers, "Content-MD5"),
            _get_header(headers, "Content-Type"),
            _get_header(headers, "Date"),
        ]

        # Each canonical header line ends with a newline; with no x-ms-*
        # headers the block is empty and contributes no line at all.
        if canonical_headers:
            parts.append(canonical_headers)
        parts.append(canonical_resource)

        return "\n".join(parts)


class TableSigner(RequestSigner):
    """
    Signer for the table service.

    Format:
        x-ms-date\\n
        CanonicalizedResource
    """

    def _compose(self, verb, headers, canonical_headers, canonical_resource):
        return f"{_get_header(headers, 'x-ms-date')}\n{canonical_resource}"


def compute_signature(string_to_sign: str, account_key: bytes) -> str:
    """
    Compute HMAC-SHA256 signature.

    Signature = Base64(HMAC-SHA256(UTF8(StringToSign), AccountKey))

    Args:
        string_to_sign: Canonical string to sign
        account_key: Raw (decoded) account key

    Returns:
        Base64-encoded signature
    """
    signature_bytes = hmac.new(
        account_key,
        string_to_sign.encode("utf-8"),
        hashlib.sha256
    ).digest()

    return base64.b64encode(signature_bytes).decode("utf-8")


def build_authorization_header(scheme: str, account_name: str, signature: str) -> str:
    """Format an Authorization header value."""
    return f"{scheme} {account_name}:{signature}"


def parse_authorization_header(auth_header: str) -> Tuple[str, str, str]:
    """
    Parse a SharedKey or SharedKeyLite Authorization header.

    Expected format: "SharedKeyLite account:signature"

    Args:
        auth_header: Authorization header value

    Returns:
        Tuple of (scheme, account_name, signature)

    Raises:
        InvalidAuthorizationHeaderError: If header is malformed
    """
    parts = auth_header.strip().split(maxsplit=1) if auth_header else []

    if len(parts) != 2:
        raise InvalidAuthorizationHeaderError(
            "Authorization header must be in format: <scheme> account:signature"
        )

    scheme, credentials = parts

    if scheme not in ("SharedKey", SHARED_KEY_LITE):
        raise InvalidAuthorizationHeaderError(
            f"Expected SharedKey or SharedKeyLite scheme, got: {scheme}"
        )

    account_name, sep, signature = credentials.partition(":")

    if not sep or not account_name or not signature:
        raise InvalidAuthorizationHeaderError(
            "Credentials must be in format: account:signature"
        )

    return scheme, account_name, signature
