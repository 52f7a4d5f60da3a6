"""
Remote document fetching for the updater.
"""

from typing import Optional

import requests

from ..config import LocalConfig, RemoteConfig
from ..core.paths import normalize_path
from ..exceptions import FetchError, ParseError


def build_url(base_url: str, rel_path: str) -> str:
    """Join a normalized relative path onto a base URL."""
    return base_url.rstrip("/") + "/" + normalize_path(rel_path)


def fetch_json(url: str, timeout: Optional[float] = None):
    """
    Fetch and decode a JSON document.

    Args:
        url: Document URL
        timeout: Seconds to wait for the server (None waits forever)

    Raises:
        FetchError: if the request fails or the server answers with an error
        ParseError: if the body is not valid JSON
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as e:
        raise FetchError(f"HTTP {e.response.status_code} for {url}")
    except requests.Timeout:
        raise FetchError(f"Timed out fetching {url}")
    except requests.RequestException as e:
        raise FetchError(f"Could not fetch {url}: {e}")

    try:
        return response.json()
    except ValueError as e:
        raise ParseError(f"Invalid JSON from {url}: {e}")


def fetch_remote_config(config: LocalConfig) -> RemoteConfig:
    """Fetch the server's configuration document."""
    url = build_url(config.base_url, config.host_config)
    return RemoteConfig.from_dict(fetch_json(url, timeout=config.timeout))


def fetch_remote_listing(config: LocalConfig) -> list:
    """Fetch the server's file listing (parsed, not yet validated)."""
    url = build_url(config.base_url, config.host_script)
    return fetch_json(url, timeout=config.timeout)
