"""
Mapping module for Static Map Saver.

This module provides functionality for:
- Querying Airtable place tables with filters and pagination
- Caching decoded Airtable pages on disk
- Building MapBox static image URLs and saving the images
- Orchestrating the complete table-to-images run

Main classes:
- MapSaver: High-level interface for a map saving run
- AirtableClient: Airtable REST API wrapper
- MapBoxClient: MapBox Static Images API wrapper
- SimpleCache: File cache for decoded responses

Errors:
- TransportError: Request never produced a response
- HttpStatusError: API answered with a non-2xx status
- DataValidationError: Record lacks the data needed for its maps
- CacheError: Cache write/remove failures
- FileWriteError: Downloaded image could not be written
"""

from .airtable_client import AirtableClient, QueryFilters
from .mapbox_client import MapBoxClient, MapImageRequest
from .mapping_cache import SimpleCache, normalize_key
from .mapping_errors import (
    CacheError,
    DataValidationError,
    FileWriteError,
    ErrorKind,
    HttpStatusError,
    MapSaverError,
    RequestOutcome,
    TransportError,
)
from .mapping_workflow import MapSaver, PlaceRecord, SaveReport, has_more_pages, resolve_coordinates

__all__ = [
    # Main classes
    "MapSaver",
    "AirtableClient",
    "MapBoxClient",
    "SimpleCache",

    # Values
    "QueryFilters",
    "MapImageRequest",
    "PlaceRecord",
    "SaveReport",
    "RequestOutcome",

    # Helpers
    "normalize_key",
    "has_more_pages",
    "resolve_coordinates",

    # Errors
    "ErrorKind",
    "MapSaverError",
    "TransportError",
    "HttpStatusError",
    "DataValidationError",
    "CacheError",
    "FileWriteError",
]
