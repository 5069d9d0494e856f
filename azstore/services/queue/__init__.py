"""Azure Queue Storage service client."""

from azstore.core.client import QUEUE_SERVICE_NAME
from azstore.services.base import BlobQueueServiceClient


class QueueServiceClient(BlobQueueServiceClient):
    """Operations of the queue service of a storage account."""

    service_name = QUEUE_SERVICE_NAME


__all__ = ["QueueServiceClient"]
