"""
HTTP clients for the Partogram Service API.
"""
from clients.timer_api_client import (
    APIResponseError,
    PartogramAPIClient,
    TransientSyncError,
    get_partogram_api_client,
)

__all__ = [
    "APIResponseError",
    "PartogramAPIClient",
    "TransientSyncError",
    "get_partogram_api_client",
]
