"""
Signed REST client for the OKX Web3 DEX API

Every request carries the OK-ACCESS-* headers. The signature is
base64(HMAC-SHA256(secret, timestamp + METHOD + requestPath + body)) where
requestPath includes the query string for GET requests.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

try:
    import httpx
except ImportError:
    httpx = None

from ..errors import APIError, ConfigurationError
from ..config import OKXConfig, get_config

logger = logging.getLogger(__name__)


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-01-01T00:00:00.000Z"""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def sign_request(secret_key: str, timestamp: str, method: str, request_path: str, body: str = "") -> str:
    """Compute the OK-ACCESS-SIGN header value"""
    prehash = f"{timestamp}{method.upper()}{request_path}{body}"
    digest = hmac.new(secret_key.encode("utf-8"), prehash.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


class HTTPClient:
    """
    Authenticated client for the aggregator REST API

    Usage:
        client = HTTPClient(OKXConfig(api_key=..., secret_key=..., api_passphrase=..., project_id=...))
        envelope = client.request("GET", "/api/v5/dex/aggregator/quote", {"chainId": "1", ...})
        quotes = envelope["data"]

    Raises APIError for HTTP failures and for envelopes whose code is not "0".
    Timeouts, connection errors, 429 and 5xx responses are retried with
    linear backoff up to config.max_retries attempts.
    """

    def __init__(self, config: OKXConfig, retry_delay: Optional[float] = None):
        if httpx is None:
            raise RuntimeError("httpx is required for the OKX API. Install with: pip install httpx")

        for name in ("api_key", "secret_key", "api_passphrase"):
            if not getattr(config, name):
                raise ConfigurationError.missing(
                    name,
                    "Set OKX_API_KEY, OKX_SECRET_KEY and OKX_API_PASSPHRASE or pass them in OKXConfig.",
                )

        defaults = get_config().api
        self._config = config
        self._base_url = (config.base_url or defaults.base_url).rstrip("/")
        self._timeout = config.timeout or defaults.timeout
        self._max_retries = max(1, config.max_retries or defaults.max_retries)
        self._retry_delay = retry_delay if retry_delay is not None else defaults.retry_delay
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def _headers(self, timestamp: str, method: str, request_path: str, body: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "OK-ACCESS-KEY": self._config.api_key,
            "OK-ACCESS-SIGN": sign_request(self._config.secret_key, timestamp, method, request_path, body),
            "OK-ACCESS-TIMESTAMP": timestamp,
            "OK-ACCESS-PASSPHRASE": self._config.api_passphrase,
            "OK-ACCESS-PROJECT": self._config.project_id or "",
        }

    @staticmethod
    def _error_message(response: "httpx.Response") -> str:
        try:
            data = response.json()
            return data.get("msg") or data.get("message") or str(data)
        except ValueError:
            return response.text[:500] if response.text else f"HTTP {response.status_code}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send a signed request

        Args:
            method: "GET" or "POST"
            path: API path starting with /api/v5
            params: Query parameters (GET, already stringified) or JSON body (POST)

        Returns:
            Parsed envelope {code, msg, data}

        Raises:
            APIError: On HTTP failure, non-JSON response or non-zero envelope code
        """
        method = method.upper()
        client = self._get_client()
        params = params or {}

        if method == "GET":
            query = urlencode(params)
            request_path = f"{path}?{query}" if query else path
            body = ""
        else:
            request_path = path
            body = json.dumps(params, separators=(",", ":"))

        url = f"{self._base_url}{request_path}"
        last_error: Optional[APIError] = None

        for attempt in range(self._max_retries):
            # Timestamp must be fresh per attempt or the signature expires
            timestamp = iso_timestamp()
            headers = self._headers(timestamp, method, request_path, body)

            try:
                response = client.request(
                    method,
                    url,
                    headers=headers,
                    content=body if method != "GET" else None,
                )
                if response.status_code >= 400:
                    last_error = APIError.http_error(response.status_code, self._error_message(response))
                    logger.warning(f"OKX API {method} {path} failed (attempt {attempt + 1}): {last_error}")
                    if not last_error.recoverable:
                        raise last_error
                else:
                    try:
                        envelope = response.json()
                    except ValueError as e:
                        raise APIError(
                            f"Invalid JSON response from {path}",
                            status=response.status_code,
                            original_error=e,
                        )
                    code = str(envelope.get("code", "0"))
                    if code != "0":
                        logger.warning(f"OKX API {method} {path} returned code {code}: {envelope.get('msg')}")
                        raise APIError.envelope(code, envelope.get("msg") or "unknown error")
                    logger.debug(f"OKX API {method} {path} ok")
                    return envelope

            except httpx.TimeoutException as e:
                last_error = APIError(
                    f"OKX API timeout after {self._timeout}s",
                    recoverable=True,
                    original_error=e,
                )
                logger.warning(f"OKX API timeout (attempt {attempt + 1}): {path}")

            except httpx.RequestError as e:
                last_error = APIError(
                    f"OKX API request error: {e}",
                    recoverable=True,
                    original_error=e,
                )
                logger.warning(f"OKX API request error (attempt {attempt + 1}): {e}")

            if attempt < self._max_retries - 1:
                time.sleep(self._retry_delay * (attempt + 1))

        raise last_error or APIError(f"OKX API request failed: {path}")

    def close(self):
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
