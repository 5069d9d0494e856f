"""Azure Blob Storage service client."""

from azstore.core.client import BLOB_SERVICE_NAME
from azstore.services.base import BlobQueueServiceClient


class BlobServiceClient(BlobQueueServiceClient):
    """Operations of the blob service of a storage account."""

    service_name = BLOB_SERVICE_NAME


__all__ = ["BlobServiceClient"]
