"""
FitMetrics — PostgREST Store
Row store over a Supabase/PostgREST endpoint (`/rest/v1/<table>`).
"""
import logging
import time

import pandas as pd
import requests

from fitmetrics.config import FITMETRICS_API_URL, FITMETRICS_API_KEY
from fitmetrics.store import Store, StoreError, conflict_columns

log = logging.getLogger(__name__)

# PostgREST sits behind the same gateway limits as the app
RATE_LIMIT_DELAY = 0.1  # seconds between requests
MAX_RETRIES = 3
RETRY_BACKOFF = 2  # exponential backoff multiplier
REQUEST_TIMEOUT = 15


class RestStore(Store):

    def __init__(self, base_url: str = FITMETRICS_API_URL, api_key: str = FITMETRICS_API_KEY,
                 session: requests.Session | None = None):
        if not base_url:
            raise StoreError("FITMETRICS_API_URL is not set")
        self.base_url = base_url.rstrip("/") + "/rest/v1"
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, table: str, params=None, body=None, prefer: str | None = None):
        """One PostgREST call with retry on 429/5xx/timeouts. Errors become StoreError."""
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer
        url = f"{self.base_url}/{table}"

        time.sleep(RATE_LIMIT_DELAY)
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                r = self.session.request(
                    method, url, headers=headers, params=params,
                    json=body, timeout=REQUEST_TIMEOUT,
                )
                if r.status_code == 429 or r.status_code >= 500:
                    if attempt < MAX_RETRIES:
                        wait = RETRY_BACKOFF ** attempt
                        log.warning("%s %s: HTTP %s, retrying in %ss (attempt %s/%s)",
                                    method, table, r.status_code, wait, attempt, MAX_RETRIES)
                        time.sleep(wait)
                        continue
                r.raise_for_status()
                if not r.content:
                    return []
                return r.json()
            except requests.exceptions.Timeout as e:
                if attempt < MAX_RETRIES:
                    log.warning("%s %s: timeout, retrying (attempt %s/%s)",
                                method, table, attempt, MAX_RETRIES)
                    time.sleep(RETRY_BACKOFF ** attempt)
                else:
                    raise StoreError(f"{method} {table} timed out after {MAX_RETRIES} attempts") from e
            except requests.exceptions.RequestException as e:
                raise StoreError(f"{method} {table} failed: {e}") from e
        raise StoreError(f"{method} {table} failed after {MAX_RETRIES} attempts")

    def select(self, table, user_id, start=None, end=None, date_column="log_date"):
        params = [("select", "*"), ("user_id", f"eq.{user_id}")]
        if date_column is not None:
            if start is not None:
                params.append((date_column, f"gte.{start}"))
            if end is not None:
                params.append((date_column, f"lte.{end}"))
            params.append(("order", f"{date_column}.asc"))
        return pd.DataFrame(self._request("GET", table, params=params))

    def upsert(self, table, row, on_conflict=("user_id", "log_date")):
        keys = conflict_columns(on_conflict)
        data = self._request(
            "POST", table,
            params={"on_conflict": ",".join(keys)},
            body=[row],
            prefer="resolution=merge-duplicates,return=representation",
        )
        return data[0] if data else dict(row)

    def delete(self, table, user_id, log_date):
        data = self._request(
            "DELETE", table,
            params={"user_id": f"eq.{user_id}", "log_date": f"eq.{log_date}"},
            prefer="return=representation",
        )
        return len(data)
