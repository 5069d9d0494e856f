"""
azstore: Azure Storage client

SharedKeyLite-signed access to the blob, queue, and table services of a
storage account.
"""

__version__ = "0.1.0"
__author__ = "azstore Team"

from .core.client import StorageClient
from .exceptions import (
    AzureStorageServiceError,
    ParameterError,
    SerializationError,
    StorageError,
    StructuredServiceError,
    TableServiceError,
    UnexpectedStatusError,
)

__all__ = [
    "StorageClient",
    "StorageError",
    "ParameterError",
    "SerializationError",
    "StructuredServiceError",
    "AzureStorageServiceError",
    "TableServiceError",
    "UnexpectedStatusError",
    "__version__",
]
