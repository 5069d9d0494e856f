"""
Storage account client.

Owns the account credentials and performs the single signed request/response
round trip that every service operation is built on.

Author: azstore Team
Date: 2026-10-17
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Union
from urllib.parse import quote, urlencode

import httpx

from azstore.auth.sharedkey import RequestSigner, SharedKeyCredentials
from azstore.core.config_manager import (
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    StorageConfig,
)
from azstore.core.error_decoder import ServiceErrorDecoder, is_error_status
from azstore.core.logging_config import configure_logging, set_request_id
from azstore.exceptions import (
    EmptyResponseBodyError,
    ParameterError,
    UnexpectedStatusError,
)

logger = logging.getLogger(__name__)

BLOB_SERVICE_NAME = "blob"
TABLE_SERVICE_NAME = "table"
QUEUE_SERVICE_NAME = "queue"

RFC1123_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"

# Characters kept unescaped in endpoint paths
_PATH_SAFE_CHARS = "/$&+,;=:@"

Body = Union[bytes, str, None]


def current_time_rfc1123(now: Optional[datetime] = None) -> str:
    """Format a UTC timestamp the way x-ms-date expects."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime(RFC1123_FORMAT)


class StorageResponse:
    """
    Successful storage service response.

    The body is streamed; close the response (or use it as a context
    manager) to release the connection.
    """

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    def read(self) -> bytes:
        """Read the remaining body and release the connection."""
        try:
            return self._response.read()
        finally:
            self._response.close()

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> "StorageResponse":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class StorageClient:
    """
    Client for the services of one storage account.

    Example:
        client = StorageClient.basic("myaccount", "bXlrZXk=")
        tables = client.get_table_service().query_tables()
    """

    def __init__(
        self,
        account_name: str,
        account_key: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        use_https: bool = True,
        *,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize storage client.

        Args:
            account_name: Storage account name
            account_key: Base64-encoded account key
            base_url: Storage endpoint domain (default: core.windows.net)
            api_version: Value sent in the x-ms-version header
            use_https: Use https endpoints instead of http
            http_client: Optional httpx client; one is created and owned otherwise
            timeout: Timeout in seconds for an owned httpx client

        Raises:
            ParameterError: If the account name, key or base URL is empty
            InvalidAccountKeyError: If the key is not valid base64
        """
        self.credentials = SharedKeyCredentials.from_base64(account_name, account_key)
        if not base_url:
            raise ParameterError("baseURL")

        self.base_url = base_url
        self.api_version = api_version
        self.use_https = use_https

        self._owns_http_client = http_client is None
        self._http = http_client if http_client is not None else httpx.Client(timeout=timeout)

    @classmethod
    def basic(cls, account_name: str, account_key: str, **kwargs) -> "StorageClient":
        """Create a client for the public cloud with default API version and HTTPS."""
        return cls(account_name, account_key, DEFAULT_BASE_URL, DEFAULT_API_VERSION, True, **kwargs)

    @classmethod
    def from_config(
        cls, config: StorageConfig, *, apply_logging: bool = False, **kwargs
    ) -> "StorageClient":
        """
        Create a client from a loaded StorageConfig.

        Args:
            config: Loaded configuration
            apply_logging: Also install the config's logging section
            **kwargs: Passed to the constructor (e.g. http_client)
        """
        if apply_logging:
            configure_logging(config.logging)

        return cls(
            config.account_name,
            config.account_key.get_secret_value(),
            config.base_url,
            config.api_version,
            config.use_https,
            timeout=config.timeout,
            **kwargs,
        )

    @property
    def account_name(self) -> str:
        return self.credentials.account_name

    def get_endpoint(
        self,
        service: str,
        path: str,
        params: Optional[Mapping[str, Union[str, Iterable[str]]]] = None,
    ) -> str:
        """
        Build the URL of a resource in one of the account's services.

        Args:
            service: Service name (blob, queue, table)
            path: Resource path, leading slash optional
            params: Query parameters, encoded in sorted key order

        Returns:
            Absolute URL, e.g. https://myaccount.table.core.windows.net/Tables
        """
        scheme = "https" if self.use_https else "http"
        host = f"{self.account_name}.{service}.{self.base_url}"

        if not path.startswith("/"):
            path = "/" + path

        url = f"{scheme}://{host}{quote(path, safe=_PATH_SAFE_CHARS)}"
        if params:
            url += "?" + urlencode(sorted(params.items()), doseq=True)
        return url

    def get_standard_headers(self) -> Dict[str, str]:
        """Headers sent with every request."""
        return {
            "x-ms-version": self.api_version,
            "x-ms-date": current_time_rfc1123(),
        }

    def get_authorization_header(
        self, signer: RequestSigner, verb: str, url: str, headers: Mapping[str, str]
    ) -> str:
        """
        Sign a request with the account key.

        Raises:
            CanonicalizationError: If the request cannot be canonicalized
        """
        return signer.sign(verb, headers, url, self.credentials.account_key)

    def exec(
        self,
        verb: str,
        url: str,
        headers: Mapping[str, str],
        body: Body,
        signer: RequestSigner,
        error_decoder: ServiceErrorDecoder,
    ) -> StorageResponse:
        """
        Sign and send one request.

        Args:
            verb: HTTP method
            url: Full request URL
            headers: Request headers; copied, never modified
            body: Request body
            signer: Signer for the target service
            error_decoder: Decoder for the target service's error bodies

        Returns:
            StorageResponse for a non-error status; the caller closes it

        Raises:
            CanonicalizationError: If the request cannot be signed
            StructuredServiceError: If the service returned a decodable error
            EmptyResponseBodyError: If the service returned an error without a body
            DeserializationError: If the error body cannot be decoded
            httpx.HTTPError: On transport failures
        """
        request_headers = dict(headers)
        request_headers["Authorization"] = self.get_authorization_header(
            signer, verb, url, request_headers
        )

        logger.debug(f"{verb} {url}")
        request = self._http.build_request(verb, url, headers=request_headers, content=body)
        response = self._http.send(request, stream=True)
        set_request_id(response.headers.get("x-ms-request-id"))

        if not is_error_status(response.status_code):
            return StorageResponse(response)

        try:
            response_body = response.read()
        finally:
            response.close()

        if not response_body:
            raise EmptyResponseBodyError(response.status_code, response.reason_phrase)

        error = error_decoder(
            response_body,
            response.status_code,
            response.headers.get("x-ms-request-id", ""),
        )
        logger.warning(
            f"Storage service error: {error.code} "
            f"(status={error.status_code}, request_id={error.request_id})"
        )
        raise error

    def get_blob_service(self) -> "BlobServiceClient":
        from azstore.services.blob import BlobServiceClient
        return BlobServiceClient(self)

    def get_queue_service(self) -> "QueueServiceClient":
        from azstore.services.queue import QueueServiceClient
        return QueueServiceClient(self)

    def get_table_service(self) -> "TableServiceClient":
        from azstore.services.table import TableServiceClient
        return TableServiceClient(self)

    def close(self) -> None:
        """Close the underlying httpx client if this client created it."""
        if self._owns_http_client:
            self._http.close()

    def __enter__(self) -> "StorageClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def check_response_code(status_code: int, allowed: Iterable[int]) -> None:
    """
    Verify a response status code.

    Raises:
        UnexpectedStatusError: If the code is not one of the allowed codes
    """
    allowed = list(allowed)
    if status_code not in allowed:
        raise UnexpectedStatusError(allowed, status_code)
