import logging
import os
import time
from typing import Dict, Iterable, Optional

import pandas as pd
import requests


logger = logging.getLogger(__name__)

QUERY_ENDPOINT = "/query"
DAILY_ADJUSTED_FUNCTION = "TIME_SERIES_DAILY_ADJUSTED"
TIME_SERIES_KEYS = ("Time Series (Daily)", "Time Series (Daily Adjusted)")
CLOSE_KEYS = ("5. adjusted close", "4. close")
IN_BODY_ERROR_KEYS = ("Error Message", "Note", "Information")


def _normalize_token(value: Optional[str]) -> Optional[str]:
    """Return a stripped token string or None if empty."""

    if value is None:
        return None
    cleaned = value.strip()
    return cleaned if cleaned else None


def _extract_time_series(payload: Dict, candidate_keys: Iterable[str]) -> Optional[Dict]:
    for key in candidate_keys:
        if key in payload:
            return payload.get(key)
    return None


def _extract_close(row: Dict) -> Optional[str]:
    for key in CLOSE_KEYS:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


class AlphaVantageClient:
    """Simple client for fetching Alpha Vantage daily closes."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self.api_key = api_key or os.getenv("ALPHAVANTAGE_API_KEY")
        self.base_url = (
            base_url or os.getenv("ALPHAVANTAGE_BASE_URL", "https://www.alphavantage.co")
        ).rstrip("/")

        logger.debug(
            "initialized client base_url=%s has_api_key=%s",
            self.base_url,
            bool(self.api_key),
        )

    @staticmethod
    def _extract_error_detail(response: requests.Response) -> str:
        """Return a human-readable error detail from the API response."""

        try:
            payload = response.json()
            if isinstance(payload, dict):
                for key in IN_BODY_ERROR_KEYS:
                    if payload.get(key):
                        return str(payload[key])
                if payload.get("message"):
                    return str(payload["message"])
        except ValueError:
            pass

        return response.text or ""

    def _request(self, method: str, path: str, **kwargs) -> Dict:
        url = f"{self.base_url}{path}"
        max_retries = 3
        base_retry_delay = 5.0

        headers = kwargs.pop("headers", {}) or {}
        kwargs["headers"] = {"Accept": "application/json", **headers}

        for attempt in range(max_retries):
            response = requests.request(method, url, timeout=10, **kwargs)
            if response.status_code == 429 and attempt < max_retries - 1:
                retry_after = response.headers.get("Retry-After")
                try:
                    delay = float(retry_after) if retry_after is not None else base_retry_delay * (attempt + 1)
                except ValueError:
                    delay = base_retry_delay * (attempt + 1)
                logger.warning("Alpha Vantage rate limit hit, retrying in %.1f s", delay)
                time.sleep(delay)
                continue

            if not response.ok:
                error_message = self._extract_error_detail(response)
                if response.status_code == 429:
                    error_message = (
                        f"Rate limit exceeded after {max_retries} attempts. "
                        "Please wait before retrying."
                    )
                raise ValueError(
                    f"Alpha Vantage request failed: {response.status_code} {error_message.strip()}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ValueError("Failed to parse Alpha Vantage response as JSON") from exc

            # Alpha Vantage reports most errors with HTTP 200
            if isinstance(payload, dict):
                for key in IN_BODY_ERROR_KEYS:
                    if payload.get(key):
                        raise ValueError(f"Alpha Vantage request failed: {payload[key]}")
            return payload

    def authenticate(self) -> str:
        """Return the configured API key."""

        api_key = _normalize_token(self.api_key)
        if not api_key:
            raise ValueError("ALPHAVANTAGE_API_KEY is not set.")
        return api_key

    def fetch_daily_prices(self, symbol: str, outputsize: str = "compact") -> pd.DataFrame:
        """Retrieve daily closes for ``symbol`` as ``date``/``close`` rows, oldest first.

        The adjusted close is used when the payload carries one.
        """
        if outputsize not in ("compact", "full"):
            raise ValueError("outputsize must be 'compact' or 'full'")

        params = {
            "function": DAILY_ADJUSTED_FUNCTION,
            "symbol": symbol,
            "outputsize": outputsize,
            "apikey": self.authenticate(),
        }
        data = self._request("GET", QUERY_ENDPOINT, params=params)
        series = _extract_time_series(data, TIME_SERIES_KEYS)
        if series is None:
            raise ValueError(f"No data found for {symbol}")

        rows = []
        for date_str, values in series.items():
            close = _extract_close(values) if isinstance(values, dict) else None
            rows.append({"date": date_str, "close": close})

        df = pd.DataFrame(rows, columns=["date", "close"])
        df["date"] = pd.to_datetime(df["date"], errors="coerce")
        df["close"] = pd.to_numeric(df["close"], errors="coerce")
        df = df.dropna(subset=["date", "close"])
        if df.empty:
            raise ValueError(f"No price data returned for {symbol}")

        return df.sort_values("date").reset_index(drop=True)
