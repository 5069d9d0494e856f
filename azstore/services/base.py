"""
Shared plumbing for the blob and queue service clients.

Both services sign with SharedKeyLite in the blob/queue layout and report
failures as XML error documents.
"""

from typing import Dict, Iterable, Mapping, Optional, Union

from azstore.auth.sharedkey import BlobQueueSigner
from azstore.core.client import Body, StorageClient, StorageResponse
from azstore.core.error_decoder import service_error_from_xml


class BlobQueueServiceClient:
    """Signed round trips against the blob or queue service."""

    service_name: str = ""

    def __init__(self, client: StorageClient):
        self.client = client
        self.signer = BlobQueueSigner(client.account_name)

    def exec(
        self,
        verb: str,
        path: str,
        params: Optional[Mapping[str, Union[str, Iterable[str]]]] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Body = None,
    ) -> StorageResponse:
        """
        Send one signed request to the service.

        Args:
            verb: HTTP method
            path: Resource path, e.g. "/mycontainer/myblob"
            params: Query parameters
            headers: Extra headers, merged over the standard ones
            body: Request body

        Returns:
            StorageResponse for a non-error status; the caller closes it

        Raises:
            AzureStorageServiceError: If the service returned an error document
            EmptyResponseBodyError: If the service returned an error without a body
            DeserializationError: If the error document is not well-formed XML
        """
        url = self.client.get_endpoint(self.service_name, path, params)

        request_headers: Dict[str, str] = self.client.get_standard_headers()
        if headers:
            request_headers.update(headers)

        return self.client.exec(
            verb, url, request_headers, body, self.signer, service_error_from_xml
        )
