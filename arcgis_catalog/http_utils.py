"""
http_utils.py — HTTP transport for the ArcGIS catalog connector

Design:
- urllib3-only core (no requests)
- No retry policy of our own: the first transport failure surfaces
- Redirects disabled by default (avoid Portal sign-in flows)
- Fail fast, fail clearly: every failure raises FetchError

Config knobs can be provided via the HttpClient(cfg=...) dict.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import urlencode

import urllib3
from urllib3 import PoolManager
from urllib3.util.retry import Retry
from urllib3.util.timeout import Timeout

# --------------------------------------------------------------------------------------
# Constants / defaults
# --------------------------------------------------------------------------------------

MAX_RESPONSE_SIZE_MB = 100            # in-memory response cap
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 60.0
DEFAULT_TOTAL_RETRIES = 0
DEFAULT_FOLLOW_REDIRECTS = False
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_USER_AGENT = "arcgis-catalog/1.0 (geospatial-catalog-connector)"

BytesLike = Union[str, bytes, bytearray, memoryview]

log = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a remote resource cannot be fetched or parsed."""

    def __init__(self, message: str, url: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ArcGISServiceError(FetchError):
    """Raised when ArcGIS answers 2xx but the body is an error envelope."""

    def __init__(self, message: str, url: str, code: Optional[int] = None):
        super().__init__(message, url, status=code)
        self.code = code


# --------------------------------------------------------------------------------------
# Small helpers
# --------------------------------------------------------------------------------------

def _to_text(value: Optional[BytesLike]) -> Optional[str]:
    """Normalize str/bytes/bytearray/memoryview to str, or None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, memoryview):
        value = value.tobytes()
    return bytes(value).decode("utf-8", errors="replace")


def _bytes_too_large(data: bytes, limit_mb: int) -> bool:
    return len(data) > limit_mb * 1024 * 1024


def build_url(url: str, params: Optional[Dict[str, Any]]) -> str:
    """Append params to url in insertion order."""
    if not params:
        return url
    # ArcGIS clients send outFields=* unescaped
    qs = urlencode(params, doseq=True, safe="*")
    return f"{url}&{qs}" if "?" in url else f"{url}?{qs}"


# --------------------------------------------------------------------------------------
# Response container
# --------------------------------------------------------------------------------------

@dataclass
class SimpleResponse:
    status_code: int
    headers: Dict[str, str]
    content: bytes
    url: str

    def json(self) -> Any:
        return parse_json(self.content, self.url)


# --------------------------------------------------------------------------------------
# Core client
# --------------------------------------------------------------------------------------

class HttpClient:
    """
    Thin wrapper around urllib3.PoolManager with sensible defaults.

    - Retries: none by default; timeouts and cancellation belong to urllib3
    - Timeouts: bounded via urllib3.Timeout
    - Redirects: disabled by default
    - Size cap: guard rail for in-memory responses
    - Extra headers: passed through unmodified (opaque credentials)
    """

    def __init__(
        self,
        *,
        total_retries: int = DEFAULT_TOTAL_RETRIES,
        follow_redirects: bool = DEFAULT_FOLLOW_REDIRECTS,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        max_response_mb: int = MAX_RESPONSE_SIZE_MB,
        num_pools: int = 10,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: Optional[Dict[str, str]] = None,
        cfg: Optional[Dict[str, Any]] = None
    ) -> None:

        if cfg:
            total_retries    = int(cfg.get("http_total_retries", total_retries))
            follow_redirects = bool(cfg.get("http_follow_redirects", follow_redirects))
            connect_timeout  = float(cfg.get("http_connect_timeout", connect_timeout))
            read_timeout     = float(cfg.get("http_read_timeout", read_timeout))
            max_response_mb  = int(cfg.get("http_max_response_mb", max_response_mb))
            num_pools        = int(cfg.get("http_num_pools", num_pools))
            user_agent       = str(cfg.get("http_user_agent", user_agent))

        self.follow_redirects = follow_redirects
        self.max_response_mb = max_response_mb

        # total=None so redirects are counted apart from transport failures
        retry = Retry(
            total=None,
            connect=total_retries,
            read=total_retries,
            other=total_retries,
            redirect=DEFAULT_MAX_REDIRECTS,
            raise_on_status=False,
        )

        self._timeout = Timeout(connect=connect_timeout, read=read_timeout)
        self._http: PoolManager = urllib3.PoolManager(
            num_pools=num_pools,
            retries=retry,
            timeout=self._timeout
        )

        self._default_headers = {
            "User-Agent": user_agent,
            "Accept": "application/json, application/geo+json, */*",
            "Accept-Encoding": "gzip, deflate"
        }
        if headers:
            self._default_headers.update(headers)

    def _merge_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        out = dict(self._default_headers)
        if headers:
            out.update(headers)
        return out

    # ---------------------- Public methods ----------------------

    def get(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> SimpleResponse:
        full_url = build_url(url, params)
        hdrs = self._merge_headers(headers)
        follow = self.follow_redirects

        log.debug("[HTTP] GET %s", full_url)
        try:
            r = self._http.request("GET", full_url, headers=hdrs, redirect=follow, preload_content=False)
        except urllib3.exceptions.MaxRetryError as e:
            log.error("[HTTP] Request failed for %s: %s", full_url, e.reason)
            raise FetchError(f"Request failed for {full_url}: {e.reason}", full_url) from e
        except urllib3.exceptions.HTTPError as e:
            log.error("[HTTP] Request failed for %s: %s", full_url, e)
            raise FetchError(f"Request failed for {full_url}: {e}", full_url) from e

        try:
            status = int(r.status or 0)

            if not follow and 300 <= status < 400:
                loc = r.headers.get("Location")
                log.error("[HTTP] Redirect blocked: %s -> %s", full_url, loc)
                raise FetchError(f"Redirect blocked: {full_url} -> {loc}", full_url, status)

            try:
                content = r.read()
            except urllib3.exceptions.HTTPError as e:
                log.error("[HTTP] Failed reading body of %s: %s", full_url, e)
                raise FetchError(f"Failed reading response from {full_url}: {e}", full_url, status) from e

            if not 200 <= status < 300:
                log.error("[HTTP] %s returned HTTP %s", full_url, status)
                raise FetchError(f"HTTP {status} for {full_url}", full_url, status)

            if _bytes_too_large(content, self.max_response_mb):
                log.error("[HTTP] Response too large: %s bytes (> %s MB)", len(content), self.max_response_mb)
                raise FetchError(
                    f"Response from {full_url} exceeds {self.max_response_mb} MB", full_url, status
                )

            headers_out = {str(k).lower(): str(v) for k, v in r.headers.items()}
            return SimpleResponse(
                status_code=status,
                headers=headers_out,
                content=content,
                url=full_url
            )
        finally:
            r.release_conn()

    def get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        resp = self.get(url, params=params, headers=headers)
        data = resp.json()
        check_service_error(data, resp.url)
        return data


# --------------------------------------------------------------------------------------
# Parsers (module-level)
# --------------------------------------------------------------------------------------

def parse_json(content: BytesLike, url: str) -> Any:
    """Parse a JSON body, raising FetchError on empty or invalid content."""
    text = _to_text(content)
    if text is None or not text.strip():
        log.error("[JSON] Empty response body from %s", url)
        raise FetchError(f"Empty response from {url}", url)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        log.error("[JSON] Parse error for %s: %s", url, e)
        raise FetchError(f"Invalid JSON from {url}: {e}", url) from e


def check_service_error(data: Any, url: str) -> None:
    """ArcGIS reports many failures as HTTP 200 with an ``error`` object."""
    if not isinstance(data, dict) or not isinstance(data.get("error"), dict):
        return
    err = data["error"]
    code = err.get("code")
    message = err.get("message") or "unknown error"
    details = [d for d in err.get("details") or [] if d]
    if details:
        message = f"{message} ({'; '.join(str(d) for d in details)})"
    log.error("[HTTP] ArcGIS error %s from %s: %s", code, url, message)
    raise ArcGISServiceError(f"ArcGIS error {code} for {url}: {message}", url, code)
