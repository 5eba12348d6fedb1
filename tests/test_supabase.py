import threading
from unittest.mock import MagicMock, patch

import requests

from concentrator_dashboard.loaders.supabase import (
    RequestGeneration,
    build_table_url,
    fetch_many,
    fetch_records,
    fetch_table,
    load_dataset,
)

BASE = "https://example.supabase.co"
KEY = "anon-key"


def _response(payload, status_error=None):
    response = MagicMock()
    response.json.return_value = payload
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_fetch_table_success(mock_get):
    """Successful fetch returns the rows in an envelope and filters on the date column."""
    rows = [{"计量日期": "2024-05-01", "湿重(t)": 30.1}]
    mock_get.return_value = _response(rows)

    result = fetch_table(
        "进厂原矿-JDXY", "2024-05-01", "2024-05-31", "计量日期", base_url=BASE, anon_key=KEY,
    )

    assert result == {"success": True, "data": rows, "message": ""}
    args, kwargs = mock_get.call_args
    assert args[0].startswith(f"{BASE}/rest/v1/")
    assert kwargs["params"]["计量日期"] == ["gte.2024-05-01", "lte.2024-05-31"]
    assert kwargs["params"]["order"] == "计量日期.asc"
    assert kwargs["headers"]["apikey"] == KEY
    assert kwargs["headers"]["Authorization"] == f"Bearer {KEY}"
    assert "timeout" in kwargs


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_fetch_table_http_error(mock_get):
    mock_get.return_value = _response([], status_error=requests.HTTPError("500 Server Error"))

    result = fetch_table("进厂原矿-JDXY", base_url=BASE, anon_key=KEY)

    assert result["success"] is False
    assert result["data"] == []
    assert "进厂原矿-JDXY" in result["message"]


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_fetch_records_falls_back_to_empty(mock_get):
    mock_get.side_effect = requests.ConnectionError("unreachable")
    assert fetch_records("进厂原矿-JDXY", base_url=BASE, anon_key=KEY) == []


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_non_list_payload_is_a_failure(mock_get):
    mock_get.return_value = _response({"message": "relation does not exist"})
    assert fetch_table("missing", base_url=BASE, anon_key=KEY)["success"] is False


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_invalid_json_is_a_failure(mock_get):
    response = _response(None)
    response.json.side_effect = ValueError("Expecting value")
    mock_get.return_value = response
    assert fetch_table("t", base_url=BASE, anon_key=KEY)["success"] is False


@patch("concentrator_dashboard.loaders.supabase.SUPABASE_ANON_KEY", "")
@patch("concentrator_dashboard.loaders.supabase.SUPABASE_URL", "")
@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_missing_configuration(mock_get):
    result = fetch_table("进厂原矿-JDXY")
    assert result["success"] is False
    assert result["message"] == "数据库配置错误"
    mock_get.assert_not_called()


def test_build_table_url_quotes_table_name():
    url = build_table_url(BASE + "/", "出厂精矿-FDX")
    assert url.startswith(f"{BASE}/rest/v1/")
    assert "出厂" not in url


def test_request_generation_is_monotonic():
    generation = RequestGeneration()
    first = generation.next()
    second = generation.next()
    assert second > first
    assert generation.is_current(second)
    assert not generation.is_current(first)
    assert generation.current == second


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_fetch_many_joins_all_results(mock_get):
    def fake_get(url, params=None, headers=None, timeout=None):
        return _response([{"url": url}])

    mock_get.side_effect = fake_get
    results = fetch_many({
        "JDXY": {"table": "a", "base_url": BASE, "anon_key": KEY},
        "FDX": {"table": "b", "base_url": BASE, "anon_key": KEY},
    })
    assert set(results) == {"JDXY", "FDX"}
    assert results["JDXY"][0]["url"].endswith("/a")
    assert results["FDX"][0]["url"].endswith("/b")


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_stale_refresh_is_discarded(mock_get):
    """A refresh superseded while in flight returns None; the newer one wins."""
    generation = RequestGeneration()
    started = threading.Event()
    release = threading.Event()

    def slow_get(url, params=None, headers=None, timeout=None):
        if url.endswith("/slow"):
            started.set()
            release.wait(5)
        return _response([{"url": url}])

    mock_get.side_effect = slow_get
    outcome = {}

    def older_refresh():
        outcome["old"] = fetch_many(
            {"JDXY": {"table": "slow", "base_url": BASE, "anon_key": KEY}}, generation=generation,
        )

    worker = threading.Thread(target=older_refresh)
    worker.start()
    assert started.wait(5)

    newer = fetch_many({"JDXY": {"table": "fast", "base_url": BASE, "anon_key": KEY}}, generation=generation)
    release.set()
    worker.join(5)

    assert newer == {"JDXY": [{"url": f"{BASE}/rest/v1/fast"}]}
    assert outcome["old"] is None


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_load_dataset_fetches_each_site(mock_get):
    mock_get.return_value = _response([{"计量日期": "2024-05-01"}])
    result = load_dataset(
        "incoming_ore", "2024-05-01", "2024-05-31", sites=["JDXY", "FDX"], base_url=BASE, anon_key=KEY,
    )
    assert set(result) == {"JDXY", "FDX"}
    assert mock_get.call_count == 2


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_load_dataset_ball_mill_sites(mock_get):
    """Concentration / fineness logs are kept per site in 浓细度记录 tables."""
    def fake_get(url, params=None, headers=None, timeout=None):
        return _response([{"日期": "2024-05-01", "url": url}])

    mock_get.side_effect = fake_get
    result = load_dataset("ball_mill", "2024-05-01", "2024-05-31", base_url=BASE, anon_key=KEY)

    assert set(result) == {"FDX", "KL"}
    assert mock_get.call_count == 2
    assert result["FDX"][0]["url"] == build_table_url(BASE, "浓细度记录-FDX")
    assert result["KL"][0]["url"] == build_table_url(BASE, "浓细度记录-KL")
    _, kwargs = mock_get.call_args
    assert kwargs["params"]["日期"] == ["gte.2024-05-01", "lte.2024-05-31"]


@patch("concentrator_dashboard.loaders.supabase.requests.get")
def test_fetch_table_custom_order_and_limit(mock_get):
    mock_get.return_value = _response([])
    fetch_table("机器运行记录", order="日期.desc,时间.desc", limit=1, base_url=BASE, anon_key=KEY)

    _, kwargs = mock_get.call_args
    assert kwargs["params"]["order"] == "日期.desc,时间.desc"
    assert kwargs["params"]["limit"] == 1
    assert "日期" not in kwargs["params"]
