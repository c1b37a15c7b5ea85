"""Support backend REST API client for raw ticket, usage and mapping records."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import Config
from .errors import ApiError, AuthenticationError, DataValidationError
from .models import ProductAreaMapping, Severity, Ticket, UsageRecord
from .store import InMemoryStore


class SupportApiClient:
    """Small, typed client for the support backend's read endpoints."""

    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize a support API client.

        Args:
            config: Validated runtime configuration including the API URL and
                optional bearer token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._base_url = config.api_url

        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if config.token:
            self._session.headers.update({"Authorization": f"Bearer {config.token}"})

    def _build_url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse ISO8601 timestamps into timezone-aware UTC datetimes."""
        if not value:
            return None

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise DataValidationError(f"Invalid timestamp in support API payload: {value!r}") from exc
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _get_data(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a GET request and unwrap the ``{"success", "data"}`` envelope.

        Retries 429 and 5xx responses with backoff.

        Raises:
            AuthenticationError: If the API answers 401 or 403.
            ApiError: If the request repeatedly fails, returns another HTTP
                error, does not return a JSON object, or reports failure.
        """
        url = self._build_url(path)
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=params, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(f"Support API request failed after retries: GET {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code in (401, 403):
                raise AuthenticationError(
                    f"Support API rejected the request: GET {url} returned {status_code}. "
                    "Check the 'TECHDEBT_API_TOKEN' environment variable."
                )

            if status_code >= 400:
                raise ApiError(
                    f"Support API request failed: GET {url} returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"Support API returned invalid JSON: GET {url}") from exc

            if not isinstance(payload, dict):
                raise ApiError(f"Support API returned unexpected payload shape: GET {url}")

            if payload.get("success") is False:
                message = payload.get("message") or payload.get("error") or "unknown error"
                raise ApiError(f"Support API reported failure: GET {url} - {message}")

            return payload.get("data")

        raise ApiError(f"Support API request failed after retries: GET {url}") from last_error

    def _get_items(self, path: str) -> List[Dict[str, Any]]:
        data = self._get_data(path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ApiError(f"Support API returned a non-list 'data' field for {path}")
        return [item for item in data if isinstance(item, dict)]

    def list_organizations(self) -> List[str]:
        data = self._get_data("data/organizations")
        return [str(name) for name in data or [] if name]

    def list_product_area_mappings(self, organization: str) -> List[ProductAreaMapping]:
        """List product area to capability mappings, including key-module flags."""
        mappings: List[ProductAreaMapping] = []

        for item in self._get_items(f"config/mapping/{quote(organization, safe='')}"):
            product_area = item.get("productArea")
            capability = item.get("dynatraceCapability") or product_area
            is_key_module = item.get("isKeyModule")
            if is_key_module is None:
                is_key_module = False
            if not product_area:
                raise DataValidationError(
                    f"Product area mapping is missing 'productArea': payload={item}"
                )
            if not isinstance(is_key_module, bool):
                raise DataValidationError(
                    f"Product area mapping has a non-boolean 'isKeyModule': payload={item}"
                )

            mappings.append(
                ProductAreaMapping(
                    organization=str(item.get("organization") or organization),
                    product_area=str(product_area),
                    capability=str(capability),
                    is_key_module=is_key_module,
                )
            )

        return mappings

    def list_tickets(self, organization: str) -> List[Ticket]:
        """List support tickets for an organization."""
        tickets: List[Ticket] = []

        for item in self._get_items(f"tickets/{quote(organization, safe='')}"):
            ticket_id = item.get("id")
            requested = self._parse_datetime(item.get("requested"))
            status = item.get("status")

            if ticket_id is None or requested is None or not status:
                raise DataValidationError(
                    "Support ticket payload is missing required fields: "
                    f"organization={organization}, payload={item}"
                )

            tickets.append(
                Ticket(
                    ticket_id=str(ticket_id),
                    organization=str(item.get("organization") or organization),
                    product_area=str(item.get("productArea") or ""),
                    severity=Severity.parse(str(item.get("severity") or "")),
                    status=str(status),
                    requested=requested,
                    updated=self._parse_datetime(item.get("updated")),
                )
            )

        return tickets

    def list_usage(self, organization: str) -> List[UsageRecord]:
        """List usage/cost records for an organization."""
        records: List[UsageRecord] = []

        for item in self._get_items(f"usage/{quote(organization, safe='')}"):
            capability = item.get("capability")
            recorded_at = self._parse_datetime(item.get("uploadDate"))
            raw_amount = item.get("last30DaysCost")

            try:
                amount = float(raw_amount)
            except (TypeError, ValueError) as exc:
                raise DataValidationError(
                    f"Usage payload has a non-numeric amount: organization={organization}, "
                    f"payload={item}"
                ) from exc

            if not capability or recorded_at is None or not amount >= 0:
                raise DataValidationError(
                    "Usage payload is missing required fields or has a negative amount: "
                    f"organization={organization}, payload={item}"
                )

            records.append(
                UsageRecord(
                    organization=str(item.get("organization") or organization),
                    capability=str(capability),
                    amount=amount,
                    recorded_at=recorded_at,
                )
            )

        return records

    def load_organization(self, organization: str) -> InMemoryStore:
        """Download an organization's mappings, tickets and usage into a store."""
        return InMemoryStore(
            tickets=self.list_tickets(organization),
            usage=self.list_usage(organization),
            mappings=self.list_product_area_mappings(organization),
        )
