"""
azstore authentication module.

Provides request canonicalization and SharedKeyLite signing for the
blob, queue, and table services.

Author: azstore Team
Date: 2026-10-17
"""

from azstore.auth.canonicalizer import (
    canonical_header,
    canonical_resource,
    encode_components,
    parse_query_string,
)
from azstore.auth.sharedkey import (
    BlobQueueSigner,
    CanonicalizedRequest,
    RequestSigner,
    SharedKeyCredentials,
    TableSigner,
    build_authorization_header,
    compute_signature,
    parse_authorization_header,
)

__all__ = [
    # Canonicalization
    "canonical_header",
    "canonical_resource",
    "encode_components",
    "parse_query_string",
    # SharedKeyLite signing
    "BlobQueueSigner",
    "CanonicalizedRequest",
    "RequestSigner",
    "SharedKeyCredentials",
    "TableSigner",
    "build_authorization_header",
    "compute_signature",
    "parse_authorization_header",
]
