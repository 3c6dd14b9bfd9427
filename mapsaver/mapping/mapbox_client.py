"""
MapBox Static Images API client.

Builds deterministic style/static image URLs and streams the rendered PNG
to a local file:

    {base}/{username}/{style_id}/static/[{overlay}/]{lon},{lat},{zoom},{bearing},{pitch}|{auto}/{width}x{height}[@2x]
"""

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests

from ..config.logger_module import log_debug, log_info, log_warning, log_error
from .mapping_errors import FileWriteError, HttpStatusError, RequestOutcome, TransportError


def format_number(value: Union[int, float]) -> str:
    """Render a number for a URL path, dropping a trailing .0 on integral floats."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _require_number(name: str, value: Any) -> Union[int, float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    return value


def _require_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    return value


def _require_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class MapImageRequest:
    """
    Parameters of one static image.

    Ranges are advisory and not enforced: lon -180..180, lat -90..90,
    zoom 0..20, bearing 0..360, pitch 0..60, width/height 1..1280.
    A non-empty auto replaces lon, lat, zoom, bearing and pitch.
    """

    style_id: str = ""
    overlay: str = ""
    lon: float = 100
    lat: float = 45
    zoom: float = 1
    bearing: float = 0
    pitch: float = 0
    auto: str = ""
    width: int = 600
    height: int = 600
    high_density: bool = False


class MapBoxClient:
    """
    Wraps the MapBox Static Images API for one account.

    Setters validate types only and return the client for chaining.
    """

    DEFAULT_BASE_URL = "https://api.mapbox.com/styles/v1/"

    def __init__(self,
                 username: str,
                 access_token: str,
                 base_url: str = DEFAULT_BASE_URL,
                 verify_ssl: bool = True,
                 request_timeout: float = 120.0):
        """
        Initialize the MapBox client.

        Args:
            username: Account the style belongs to
            access_token: MapBox access token
            base_url: API root, default https://api.mapbox.com/styles/v1/
            verify_ssl: Verify TLS certificates
            request_timeout: HTTP timeout in seconds, long enough for large images
        """
        self.username = username
        self.access_token = access_token
        self.base_url = base_url
        self.verify_ssl = verify_ssl
        self.request_timeout = request_timeout
        self.request = MapImageRequest()

        self._session: Optional[requests.Session] = None
        self._request_data: Dict[str, Any] = {}

    # ==================== IMAGE PARAMETERS ====================

    def _update(self, **changes) -> "MapBoxClient":
        self.request = dataclasses.replace(self.request, **changes)
        return self

    def set_style_id(self, style_id: str) -> "MapBoxClient":
        return self._update(style_id=_require_str("style_id", style_id))

    def set_overlay(self, overlay: str) -> "MapBoxClient":
        """Comma separated geojson, marker or path features drawn over the map."""
        return self._update(overlay=_require_str("overlay", overlay))

    def set_lon(self, lon: float) -> "MapBoxClient":
        return self._update(lon=_require_number("lon", lon))

    def set_lat(self, lat: float) -> "MapBoxClient":
        return self._update(lat=_require_number("lat", lat))

    def set_zoom(self, zoom: float) -> "MapBoxClient":
        return self._update(zoom=_require_number("zoom", zoom))

    def set_bearing(self, bearing: float) -> "MapBoxClient":
        return self._update(bearing=_require_number("bearing", bearing))

    def set_pitch(self, pitch: float) -> "MapBoxClient":
        return self._update(pitch=_require_number("pitch", pitch))

    def set_auto(self, auto: str) -> "MapBoxClient":
        """Fit the viewport to the overlay bounds, e.g. "auto"."""
        return self._update(auto=_require_str("auto", auto))

    def set_width(self, width: int) -> "MapBoxClient":
        return self._update(width=_require_int("width", width))

    def set_height(self, height: int) -> "MapBoxClient":
        return self._update(height=_require_int("height", height))

    def set_high_density(self, high_density: bool) -> "MapBoxClient":
        if not isinstance(high_density, bool):
            raise TypeError(f"high_density must be a bool, got {type(high_density).__name__}")
        return self._update(high_density=high_density)

    def set_verify_ssl(self, verify_ssl: bool) -> "MapBoxClient":
        self.verify_ssl = verify_ssl
        return self

    # ==================== URL ====================

    def build_image_url(self, request: MapImageRequest = None) -> str:
        """
        Build the static image URL for request (defaults to the current one).

        Returns:
            Complete URL including the access_token query parameter
        """
        request = request or self.request

        path = f"{self.base_url.rstrip('/')}/{self.username}/{request.style_id}/static/"
        if request.overlay:
            path += f"{request.overlay}/"

        if request.auto:
            path += f"{request.auto}/"
        else:
            path += ",".join(
                format_number(value) for value in (
                    request.lon, request.lat, request.zoom, request.bearing, request.pitch
                )
            ) + "/"

        path += f"{request.width}x{request.height}"
        if request.high_density:
            path += "@2x"

        return f"{path}?access_token={self.access_token}"

    def _redact(self, url: str) -> str:
        if not self.access_token:
            return url
        return url.replace(self.access_token, "***")

    # ==================== DOWNLOAD ====================

    def _load_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"User-Agent": "StaticMapSaver/0.1"})
        return self._session

    def save_png(self, file_path: Union[str, Path]) -> RequestOutcome:
        """
        Download the current image and stream it to file_path.

        The body is streamed to a ``.part`` file next to file_path and moved
        onto it only once complete, so a failed download never touches an
        image saved earlier. Nothing is written for non-2xx responses.

        Args:
            file_path: Destination PNG path; parent directories are created

        Returns:
            RequestOutcome with the response and/or the reported error
        """
        file_path = Path(file_path)
        part_path = file_path.with_name(f"{file_path.name}.part")
        url = self.build_image_url()
        self._request_data = {
            "method": "GET",
            "path": url,
            "options": {"sink": str(file_path)},
        }

        log_debug(f"MapBox GET {self._redact(url)}")

        try:
            response = self._load_session().get(
                url,
                stream=True,
                timeout=self.request_timeout,
                verify=self.verify_ssl
            )
        except requests.exceptions.RequestException as e:
            log_error(f"MapBox request failed: GET {self._redact(url)}")
            return RequestOutcome(error=TransportError(f"MapBox request failed: {self._redact(str(e))}"))

        try:
            if not 200 <= response.status_code < 300:
                log_warning(
                    f"MapBox HTTP {response.status_code} {response.reason} "
                    f"for {file_path.name}: {response.text[:500]}"
                )
                return RequestOutcome(
                    response=response,
                    error=HttpStatusError(response.status_code, response.reason, response.text),
                )

            file_path.parent.mkdir(parents=True, exist_ok=True)
            with part_path.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        handle.write(chunk)
            part_path.replace(file_path)

        except requests.exceptions.RequestException as e:
            log_error(f"MapBox download interrupted: GET {self._redact(url)}")
            self._discard(part_path)
            return RequestOutcome(
                response=response,
                error=TransportError(f"MapBox request failed: {self._redact(str(e))}"),
            )
        except (OSError, ValueError) as e:
            log_error(f"Could not write image {file_path}: {e}")
            self._discard(part_path)
            return RequestOutcome(
                response=response,
                error=FileWriteError(f"Could not write image: {e}", path=str(file_path)),
            )
        finally:
            response.close()

        log_info(f"Saved {file_path}")
        return RequestOutcome(response=response)

    def _discard(self, part_path: Path) -> None:
        """Remove an unfinished download, if one was started."""
        try:
            part_path.unlink(missing_ok=True)
        except (OSError, ValueError) as e:
            log_warning(f"Could not remove partial download {part_path}: {e}")

    def get_request_data(self) -> Dict[str, Any]:
        """Details of the last request issued (method, path, options)."""
        return self._request_data
