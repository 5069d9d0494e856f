"""Service clients for the blob, queue, and table services."""
