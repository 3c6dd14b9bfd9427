"""
Airtable REST API client.

Accumulates list-query filters through chainable setters and issues
requests against {base_url}/{org_id}/{table} with a bearer token.
Transport and HTTP status failures are reported and returned as a
RequestOutcome instead of being raised.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..config.logger_module import log_debug, log_info, log_warning, log_error
from .mapping_errors import HttpStatusError, RequestOutcome, TransportError


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_query(params: Dict[str, Any]) -> List[Tuple[str, str]]:
    """
    Flatten filter values into Airtable query parameters.

    Lists become repeated ``name[]`` entries and sort objects become
    ``sort[i][key]`` entries. None values are left out.

    Args:
        params: Mapping of filter name to value

    Returns:
        Ordered list of (name, value) pairs for requests' ``params``
    """
    pairs = []
    for name, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                if isinstance(item, dict):
                    for key, sub_value in item.items():
                        pairs.append((f"{name}[{index}][{key}]", _format_value(sub_value)))
                else:
                    pairs.append((f"{name}[]", _format_value(item)))
        else:
            pairs.append((name, _format_value(value)))
    return pairs


@dataclass(frozen=True)
class QueryFilters:
    """Immutable set of list-query filters; last write wins per name."""

    items: Tuple[Tuple[str, Any], ...] = ()

    def with_filter(self, name: str, value: Any) -> "QueryFilters":
        """Return a copy with name set to value, keeping its first position."""
        updated = []
        replaced = False
        for existing_name, existing_value in self.items:
            if existing_name == name:
                updated.append((name, value))
                replaced = True
            else:
                updated.append((existing_name, existing_value))
        if not replaced:
            updated.append((name, value))
        return QueryFilters(tuple(updated))

    def get(self, name: str, default: Any = None) -> Any:
        for existing_name, value in self.items:
            if existing_name == name:
                return value
        return default

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.items)


class AirtableClient:
    """
    Wraps the Airtable list/create endpoints for one base.

    Filter setters return the client so calls can be chained:

        client.set_query_max_records(100).set_query_view("Grid view").set_offset(0)
    """

    DEFAULT_BASE_URL = "https://api.airtable.com/v0/"

    def __init__(self,
                 org_id: str,
                 api_key: str,
                 base_url: str = DEFAULT_BASE_URL,
                 verify_ssl: bool = True,
                 request_timeout: float = 15.0):
        """
        Initialize the Airtable client.

        Args:
            org_id: Airtable base identifier (app...)
            api_key: API key used as bearer token
            base_url: API root, default https://api.airtable.com/v0/
            verify_ssl: Verify TLS certificates
            request_timeout: HTTP request timeout in seconds
        """
        self.org_id = org_id
        self.api_key = api_key
        self.base_url = base_url
        self.verify_ssl = verify_ssl
        self.request_timeout = request_timeout
        self.filters = QueryFilters()

        self._headers = {
            "Authorization": f"Bearer {self.api_key}",
            "User-Agent": "StaticMapSaver/0.1",
        }
        self._session: Optional[requests.Session] = None
        self._request_data: Dict[str, Any] = {}

    # ==================== FILTERS ====================

    def add_filter(self, name: str, value: Any) -> "AirtableClient":
        self.filters = self.filters.with_filter(name, value)
        return self

    def set_query_fields(self, fields: List[str]) -> "AirtableClient":
        """Only return data for the named fields."""
        return self.add_filter("fields", list(fields))

    def set_query_filter_by_formula(self, formula: str) -> "AirtableClient":
        """
        Only return records for which the formula is truthy.

        Example: ``NOT({Place Lookup} = '')``
        """
        return self.add_filter("filterByFormula", formula)

    def set_query_max_records(self, limit: int) -> "AirtableClient":
        """Maximum total number of records returned across all pages."""
        return self.add_filter("maxRecords", int(limit))

    def set_query_page_size(self, page_size: int = 100) -> "AirtableClient":
        """Records per page; Airtable caps this at 100."""
        return self.add_filter("pageSize", int(page_size))

    def set_query_view(self, view: str) -> "AirtableClient":
        return self.add_filter("view", view)

    def set_query_sort(self, sort: List[Dict[str, str]]) -> "AirtableClient":
        """
        Sort by a list of ``{"field": ..., "direction": "asc"|"desc"}`` objects.
        """
        return self.add_filter("sort", [dict(entry) for entry in sort])

    def set_query_cell_format(self, cell_format: str = "json") -> "AirtableClient":
        """Cell value format, "json" or "string"."""
        return self.add_filter("cellFormat", cell_format)

    def set_query_time_zone(self, time_zone: str) -> "AirtableClient":
        """Required with cellFormat "string"."""
        return self.add_filter("timeZone", time_zone)

    def set_query_user_locale(self, user_locale: str) -> "AirtableClient":
        """Required with cellFormat "string"."""
        return self.add_filter("userLocale", user_locale)

    def set_offset(self, offset: Any = 0) -> "AirtableClient":
        """Pagination cursor returned by the previous page."""
        return self.add_filter("offset", offset)

    def set_verify_ssl(self, verify_ssl: bool) -> "AirtableClient":
        self.verify_ssl = verify_ssl
        return self

    def build_query(self, params: Dict[str, Any] = None) -> Dict[str, Any]:
        """Merge accumulated filters over params; filters win."""
        query = dict(params or {})
        query.update(self.filters.as_dict())
        return query

    # ==================== REQUESTS ====================

    def _load_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self._headers)
        return self._session

    def _table_url(self, table: str) -> str:
        return f"{self.base_url.rstrip('/')}/{self.org_id}/{table}"

    def do_request(self,
                   method: str,
                   table: str,
                   options: Dict[str, Any] = None) -> RequestOutcome:
        """
        Issue a request against a table.

        For GET, ``options["query"]`` is merged with the accumulated filters.
        Other methods send ``options["json"]`` as the body.

        Args:
            method: HTTP method
            table: Table name or id
            options: Optional "query" and "json" entries

        Returns:
            RequestOutcome with the response and/or the reported error
        """
        method = method.upper()
        options = dict(options or {})
        request_kwargs: Dict[str, Any] = {}

        if method == "GET":
            request_kwargs["params"] = encode_query(self.build_query(options.get("query")))
        else:
            if options.get("query"):
                request_kwargs["params"] = encode_query(options["query"])
            if "json" in options:
                request_kwargs["json"] = options["json"]

        url = self._table_url(table)
        self._request_data = {
            "method": method,
            "path": table,
            "options": request_kwargs,
        }

        log_debug(f"Airtable {method} {url} {request_kwargs.get('params', '')}")

        try:
            response = self._load_session().request(
                method,
                url,
                timeout=self.request_timeout,
                verify=self.verify_ssl,
                **request_kwargs
            )
        except requests.exceptions.RequestException as e:
            log_error(f"Airtable request failed: {method} {url} {request_kwargs}")
            if getattr(e, "response", None) is not None:
                log_error(
                    f"Airtable response: HTTP {e.response.status_code} {e.response.text[:500]}"
                )
            return RequestOutcome(error=TransportError(f"Airtable request failed: {e}"))

        if not 200 <= response.status_code < 300:
            log_warning(f"Airtable HTTP {response.status_code} {response.reason}")
            log_warning(response.text[:500])
            return RequestOutcome(
                response=response,
                error=HttpStatusError(response.status_code, response.reason, response.text),
            )

        log_info(f"Airtable {method} {table}: HTTP {response.status_code}")
        return RequestOutcome(response=response)

    def get_request_data(self) -> Dict[str, Any]:
        """Details of the last request issued (method, path, options)."""
        return self._request_data

    @staticmethod
    def decode_response(outcome: RequestOutcome) -> Optional[Any]:
        """
        Decode the JSON body of an outcome, even for non-2xx responses.

        Returns:
            Decoded payload, or None when there is no response or the body
            is not JSON
        """
        if outcome.response is None:
            return None
        try:
            return outcome.response.json()
        except ValueError as e:
            log_error(f"Airtable response is not valid JSON: {e}")
            return None
