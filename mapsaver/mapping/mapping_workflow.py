"""
High-level orchestrator for the map saving workflow.

Pulls every page of a place table from Airtable (through the file cache when
enabled), resolves each record's coordinates and saves a "wide" and a
"detail" MapBox image per place.
"""

import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config.config_module import MapSaverSettings
from ..config.logger_module import log_info, log_warning, log_error
from .airtable_client import AirtableClient
from .mapbox_client import MapBoxClient
from .mapping_cache import SimpleCache
from .mapping_errors import (
    CacheError,
    DataValidationError,
    ErrorKind,
    MapSaverError,
)


class PlaceRecord(BaseModel):
    """One Airtable record as returned by the list endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    record_fields: Optional[Dict[str, Any]] = Field(default=None, alias="fields")
    created_time: Optional[str] = Field(default=None, alias="createdTime")


@dataclass
class SaveReport:
    """Outcome of a save_static_map_images run."""

    records_seen: int = 0
    saved: List[Path] = field(default_factory=list)
    failures: List[MapSaverError] = field(default_factory=list)

    def failures_of_kind(self, kind: ErrorKind) -> List[MapSaverError]:
        return [error for error in self.failures if error.kind == kind]


def _coordinate(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def resolve_coordinates(fields: Dict[str, Any], record_id: str = None) -> Tuple[float, float]:
    """
    Pick the (lat, lon) pair for a record's fields.

    Lat/Lon are used unless Recogito Status is "verified" (any case), in which
    case Recogito Lat/Recogito Lon override whichever of them is present.

    Raises:
        DataValidationError: If either coordinate is missing, empty or not numeric
    """
    latitude = fields.get("Lat")
    longitude = fields.get("Lon")

    status = fields.get("Recogito Status")
    if isinstance(status, str) and status.upper() == "VERIFIED":
        if fields.get("Recogito Lat") is not None:
            latitude = fields["Recogito Lat"]
        if fields.get("Recogito Lon") is not None:
            longitude = fields["Recogito Lon"]

    lat = _coordinate(latitude)
    lon = _coordinate(longitude)
    if lat is None or lon is None:
        raise DataValidationError(
            "FAILED to provide valid latitude and longitude", record_id=record_id
        )
    return lat, lon


def has_more_pages(offset: Any, limit: int) -> bool:
    """
    Decide whether the page carrying offset is followed by another one.

    No offset means the last page. A numeric offset continues only while it
    is below limit. Airtable's opaque cursors are not numeric and always
    continue.
    """
    if offset is None or offset == "":
        return False
    try:
        return float(offset) < limit
    except (TypeError, ValueError):
        return True


class MapSaver:
    """
    Coordinates Airtable retrieval, the response cache and MapBox downloads.

    Clients are created lazily from the settings on first use; pre-built
    clients and cache can be injected instead.
    """

    MAP_SIZES = ("wide", "detail")
    MAX_PAGE_SIZE = 100

    def __init__(self,
                 settings: MapSaverSettings,
                 cache: SimpleCache = None,
                 airtable_client: AirtableClient = None,
                 mapbox_client: MapBoxClient = None,
                 limit: int = 1000):
        """
        Initialize the orchestrator.

        Args:
            settings: Run configuration
            cache: Response cache (defaults to settings.cache_dir)
            airtable_client: Airtable client instance
            mapbox_client: MapBox client instance
            limit: Maximum number of records to retrieve
        """
        self.settings = settings
        self.cache = cache or SimpleCache(settings.cache_dir)
        self.use_airtable_cache = settings.use_airtable_cache
        self.flush_cache = False
        self.limit = limit
        self.fetch_errors: List[MapSaverError] = []

        self._airtable = airtable_client
        self._mapbox = mapbox_client

        log_info(
            f"MapSaver initialized (limit={limit}, cache={self.use_airtable_cache}, "
            f"image_dir={settings.image_dir})"
        )

    def set_use_airtable_cache(self, use_airtable_cache: bool) -> "MapSaver":
        self.use_airtable_cache = use_airtable_cache
        return self

    def set_flush_cache(self, flush_cache: bool) -> "MapSaver":
        """Ignore and replace cached pages on the next fetch."""
        self.flush_cache = flush_cache
        return self

    def set_limit(self, limit: int) -> "MapSaver":
        self.limit = int(limit)
        return self

    def get_airtable(self) -> AirtableClient:
        if self._airtable is None:
            self._airtable = AirtableClient(
                self.settings.airtable_org_id,
                self.settings.airtable_api_key,
                base_url=self.settings.airtable_base_url,
                verify_ssl=self.settings.verify_ssl,
            )
        return self._airtable

    def get_mapbox(self) -> MapBoxClient:
        if self._mapbox is None:
            self._mapbox = MapBoxClient(
                self.settings.mapbox_username,
                self.settings.mapbox_access_token,
                base_url=self.settings.mapbox_base_url,
                verify_ssl=self.settings.verify_ssl,
            )
        return self._mapbox

    # ==================== AIRTABLE ====================

    @staticmethod
    def clean_string(value: str) -> str:
        return re.sub(r"[^A-Za-z0-9_]", "", value.replace("/", "_").replace(" ", "_"))

    def get_cache_key(self, request_type: str, name: str, options: Dict[str, Any] = None) -> str:
        """
        Build the cache key for a query, e.g. ``airTable_Places_query_l100o0``.
        """
        query = urlencode(options or {})
        return (
            f"{self.clean_string(request_type)}_{self.clean_string(name)}"
            f"_query_{self.clean_string(query)}"
        )

    def _fetch_page(self, table: str, offset: Any, page_size: int) -> Dict[str, Any]:
        cache_key = self.get_cache_key("airTable", table, {"l": page_size, "o": offset})

        if self.use_airtable_cache:
            if self.flush_cache:
                try:
                    self.cache.remove(cache_key)
                except CacheError as e:
                    log_warning(f"Failed to flush cache entry (continuing): {e}")
            else:
                data = self.cache.get(cache_key)
                if isinstance(data, dict):
                    return data

        airtable = self.get_airtable()
        airtable.set_query_max_records(self.limit).set_query_cell_format().set_query_page_size(page_size)
        if self.settings.airtable_view:
            airtable.set_query_view(self.settings.airtable_view)
        # 0 marks the first page; Airtable only accepts cursors it issued
        airtable.set_offset(None if str(offset or "") in ("", "0") else offset)

        outcome = airtable.do_request("GET", table)
        if outcome.error is not None:
            self.fetch_errors.append(outcome.error)

        data = airtable.decode_response(outcome)
        if not isinstance(data, dict):
            log_error(f"No usable page for table '{table}' at offset {offset!r}")
            return {"records": []}

        if self.use_airtable_cache and outcome.ok:
            try:
                self.cache.set(cache_key, data)
            except CacheError as e:
                log_warning(f"Failed to cache page (continuing): {e}")

        return data

    def iter_airtable_pages(self, table: str, offset: Any = 0, get_all: bool = True) -> Iterator[Dict[str, Any]]:
        """
        Yield decoded pages of table starting at offset.

        Stops after the first page when get_all is False, when a page has no
        offset (see has_more_pages) or when an offset repeats.
        """
        page_size = min(self.limit, self.MAX_PAGE_SIZE)
        seen_offsets = set()
        current = offset

        while True:
            seen_offsets.add(str(current))
            page = self._fetch_page(table, current, page_size)
            yield page

            next_offset = page.get("offset")
            if not get_all or not has_more_pages(next_offset, self.limit):
                return
            if str(next_offset) in seen_offsets:
                log_warning(f"Offset {next_offset!r} repeated for table '{table}', stopping")
                return
            current = next_offset

    def get_airtable_list(self, table: str, offset: Any = 0, get_all: bool = True) -> Dict[str, Any]:
        """
        Retrieve records of table, merging pages into one record list.

        Returns:
            ``{"records": [...]}``, plus ``"offset"`` when the last page
            fetched still pointed at more records
        """
        self.fetch_errors = []
        records: List[Any] = []
        last_offset = None

        for page in self.iter_airtable_pages(table, offset, get_all):
            records.extend(page.get("records") or [])
            last_offset = page.get("offset")

        result: Dict[str, Any] = {"records": records}
        if last_offset is not None:
            result["offset"] = last_offset

        log_info(f"Retrieved {len(records)} records from '{table}'")
        return result

    # ==================== MAPBOX ====================

    def get_static_map_images(self, place: str, lat: float, lon: float, size: str = "wide") -> Path:
        """
        Save one map image for a place.

        Args:
            place: Place name, used as the file name stem
            lat: Latitude of the map center
            lon: Longitude of the map center
            size: "wide" or "detail"; selects the configured zoom

        Returns:
            Path of the saved image

        Raises:
            MapSaverError: Transport, HTTP status or file write error reported by MapBox
        """
        zoom = self.settings.mapbox_zoom_wide if size == "wide" else self.settings.mapbox_zoom_detail

        mapbox = self.get_mapbox()
        (mapbox
            .set_lat(lat)
            .set_lon(lon)
            .set_style_id(self.settings.mapbox_style_id)
            .set_height(self.settings.mapbox_height)
            .set_width(self.settings.mapbox_width)
            .set_high_density(self.settings.mapbox_high_density)
            .set_zoom(zoom))

        local_path = Path(self.settings.image_dir) / f"{place}-{size}.png"
        outcome = mapbox.save_png(local_path)
        if outcome.error is not None:
            raise outcome.error
        return local_path

    def prepare_record(self, record: Any) -> Tuple[str, float, float]:
        """
        Validate a record and extract (place, lat, lon).

        Raises:
            DataValidationError: If fields, Place Lookup or coordinates are missing
        """
        try:
            place_record = PlaceRecord.model_validate(record)
        except ValidationError as e:
            record_id = record.get("id") if isinstance(record, dict) else None
            raise DataValidationError(f"FAILED invalid record: {e}", record_id=record_id)

        fields = place_record.record_fields
        if fields is None:
            raise DataValidationError("FAILED fields not found", record_id=place_record.id)

        place = fields.get("Place Lookup")
        if place is None or not str(place).strip():
            raise DataValidationError("FAILED Place Lookup not found", record_id=place_record.id)

        lat, lon = resolve_coordinates(fields, record_id=place_record.id)
        return str(place), lat, lon

    def save_static_map_images(self, table: str = "Places", offset: Any = 0) -> SaveReport:
        """
        Save wide and detail images for every record of table.

        Records that cannot be mapped are reported and skipped; download
        failures are reported and the run moves on.

        Returns:
            SaveReport with saved paths and all reported failures
        """
        report = SaveReport()
        self.fetch_errors = []

        for page in self.iter_airtable_pages(table, offset):
            for record in page.get("records") or []:
                report.records_seen += 1
                record_id = record.get("id") if isinstance(record, dict) else None

                try:
                    place, lat, lon = self.prepare_record(record)
                except DataValidationError as e:
                    log_warning(f"ID: {record_id} {e}")
                    report.failures.append(e)
                    continue

                log_info(f"ID: {record_id} {place} ({lat}, {lon})")

                for size in self.MAP_SIZES:
                    try:
                        path = self.get_static_map_images(place, lat, lon, size)
                    except MapSaverError as e:
                        log_error(f"ID: {record_id} FAILED to save {size} image for '{place}': {e}")
                        report.failures.append(e)
                        continue
                    report.saved.append(path)
                    log_info(f"New image: {path}")

        report.failures.extend(self.fetch_errors)

        log_info(
            f"Map saving complete: {report.records_seen} records, "
            f"{len(report.saved)} images saved, {len(report.failures)} failures"
        )
        return report
