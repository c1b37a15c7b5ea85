"""Configuration parsing and validation for the technical debt analyzer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from .errors import ConfigurationError

TOKEN_ENV_VAR = "TECHDEBT_API_TOKEN"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the analyzer."""

    api_url: str
    organization: str
    product_area: Optional[str]
    months: int
    token: Optional[str]


def load_config(
    api_url: str,
    organization: str,
    product_area: Optional[str] = None,
    months: int = 6,
) -> Config:
    """Build and validate application configuration.

    Args:
        api_url: Base URL of the support backend API, for example
            ``https://support.example.com/api``.
        organization: Organization whose product areas are analyzed.
        product_area: Optional single product area to restrict the analysis to.
        months: Positive number of calendar months for trend analysis.

    Returns:
        A validated ``Config`` instance. The API token is read from the
        ``TECHDEBT_API_TOKEN`` environment variable and is optional.

    Raises:
        ConfigurationError: If any value is missing or out of range.
    """
    parsed = urlparse(api_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(
            f"Invalid value for 'api_url': expected an http(s) URL, got {api_url!r}."
        )

    if not organization or not organization.strip():
        raise ConfigurationError("Invalid value for 'organization': must not be empty.")

    if months <= 0:
        raise ConfigurationError("Invalid value for 'months': expected an integer greater than 0.")

    token: str = os.getenv(TOKEN_ENV_VAR, "").strip()
    area = product_area.strip() if product_area else None

    return Config(
        api_url=api_url.rstrip("/"),
        organization=organization.strip(),
        product_area=area or None,
        months=months,
        token=token or None,
    )
