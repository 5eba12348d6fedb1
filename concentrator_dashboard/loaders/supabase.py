"""
Data access for the hosted database (Supabase REST / PostgREST).

Every fetch returns an envelope {"success": bool, "data": [...], "message": str}.
Callers that only need rows use fetch_records(), which falls back to an
empty list on any failure; a previous result is never reused.

Fetches for one page refresh are fanned out concurrently and joined before
aggregation. Each refresh is stamped with a RequestGeneration token so a
slow, superseded refresh cannot overwrite a newer one.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import quote

import requests

from ..config import (
    DATASETS,
    MAX_FETCH_WORKERS,
    REQUEST_TIMEOUT_S,
    SUPABASE_ANON_KEY,
    SUPABASE_URL,
)

logger = logging.getLogger(__name__)


class RequestGeneration:
    """Monotonic request-generation counter.

    Call next() when a refresh starts; when its results arrive, keep them
    only if is_current(token) still holds.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = 0

    def next(self) -> int:
        with self._lock:
            self._current += 1
            return self._current

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._current

    @property
    def current(self) -> int:
        return self._current


def _envelope(success: bool, data: list | None = None, message: str = "") -> dict:
    return {"success": success, "data": data if data is not None else [], "message": message}


def build_table_url(base_url: str, table: str) -> str:
    return f"{base_url.rstrip('/')}/rest/v1/{quote(table, safe='')}"


def fetch_table(
    table: str,
    start: str | None = None,
    end: str | None = None,
    date_column: str | None = None,
    select: str = "*",
    order: str | None = None,
    limit: int | None = None,
    base_url: str | None = None,
    anon_key: str | None = None,
    timeout: float = REQUEST_TIMEOUT_S,
) -> dict:
    """Fetch rows of `table`, optionally filtered to [start, end] on `date_column`.

    Rows are ordered by `date_column` ascending unless `order` is given
    (PostgREST syntax, e.g. "日期.desc,时间.desc"); `limit` caps the row count.

    Returns
    -------
    {"success": True, "data": rows, "message": ""} on success, otherwise
    {"success": False, "data": [], "message": <reason>}.
    """
    base_url = base_url or SUPABASE_URL
    anon_key = anon_key or SUPABASE_ANON_KEY
    if not base_url or not anon_key:
        logger.warning("Database configuration missing; cannot fetch %s", table)
        return _envelope(False, message="数据库配置错误")

    params: dict = {"select": select}
    if date_column:
        filters = []
        if start:
            filters.append(f"gte.{start}")
        if end:
            filters.append(f"lte.{end}")
        if filters:
            params[date_column] = filters
    if order:
        params["order"] = order
    elif date_column:
        params["order"] = f"{date_column}.asc"
    if limit is not None:
        params["limit"] = limit

    headers = {
        "apikey": anon_key,
        "Authorization": f"Bearer {anon_key}",
        "Content-Type": "application/json",
    }

    url = build_table_url(base_url, table)
    try:
        response = requests.get(url, params=params, headers=headers, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as e:
        logger.warning("Failed to fetch %s: %s", table, e)
        return _envelope(False, message=f"获取{table}数据失败: {e}")
    except ValueError as e:
        logger.warning("Invalid JSON from %s: %s", table, e)
        return _envelope(False, message=f"获取{table}数据失败: invalid JSON")

    if not isinstance(payload, list):
        logger.warning("Unexpected payload type from %s: %s", table, type(payload).__name__)
        return _envelope(False, message=f"获取{table}数据失败: unexpected payload")

    logger.info("Fetched %d rows from %s", len(payload), table)
    return _envelope(True, payload)


def fetch_records(table: str, **kwargs) -> list[dict]:
    """Fetch rows of `table`; any failure yields an empty list."""
    result = fetch_table(table, **kwargs)
    if not result["success"]:
        return []
    return result["data"]


def fetch_many(
    requests_by_name: dict[str, dict],
    generation: RequestGeneration | None = None,
    max_workers: int = MAX_FETCH_WORKERS,
) -> dict[str, list[dict]] | None:
    """Fan out several fetch_records() calls and join them.

    Parameters
    ----------
    requests_by_name : name -> keyword arguments for fetch_records()
        (must include "table").
    generation : Optional guard. The refresh takes a new token before
        fetching; if another refresh started meanwhile, the results are
        discarded and None is returned.

    Returns
    -------
    name -> rows (empty list for failed fetches), or None when stale.
    """
    token = generation.next() if generation is not None else None

    if not requests_by_name:
        results: dict[str, list[dict]] = {}
    else:
        workers = max(1, min(max_workers, len(requests_by_name)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                name: pool.submit(fetch_records, **kwargs)
                for name, kwargs in requests_by_name.items()
            }
            results = {name: future.result() for name, future in futures.items()}

    if generation is not None and not generation.is_current(token):
        logger.info("Discarding stale results of refresh %d (current %d)", token, generation.current)
        return None
    return results


def load_dataset(
    dataset: str,
    start: str | None = None,
    end: str | None = None,
    sites: list[str] | None = None,
    generation: RequestGeneration | None = None,
    **kwargs,
) -> dict[str, list[dict]] | None:
    """Fetch one configured dataset for each site concurrently.

    Returns site -> rows, or None when the refresh was superseded.
    """
    config = DATASETS[dataset]
    tables = config.get("tables", {})
    if sites is not None:
        tables = {site: table for site, table in tables.items() if site in sites}

    requests_by_name = {
        site: {
            "table": table,
            "start": start,
            "end": end,
            "date_column": config["date_field"],
            **kwargs,
        }
        for site, table in tables.items()
    }
    return fetch_many(requests_by_name, generation=generation)
