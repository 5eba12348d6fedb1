import pytest


@pytest.fixture
def incoming_rows() -> list[dict]:
    """
    Weighbridge rows for two days, shaped like the 进厂原矿 table.
    2024-05-02 has one truck without a moisture reading.
    """
    return [
        {"计量日期": "2024-05-01", "湿重(t)": 10, "水份(%)": 10, "Pb": 2.0, "Zn": 12.0},
        {"计量日期": "2024-05-01", "湿重(t)": 30, "水份(%)": 14, "Pb": 1.0, "Zn": 10.0},
        {"计量日期": "2024-05-02", "湿重(t)": 20, "水份(%)": None, "Pb": 1.5, "Zn": 11.0},
        {"计量日期": "2024-05-02", "湿重(t)": "20", "水份(%)": "12", "Pb": "1.5", "Zn": "abc"},
    ]


@pytest.fixture
def weighted_specs() -> list[dict]:
    return [
        {"field": "weight", "mode": "sum", "output": "total_weight"},
        {"field": "value", "mode": "weighted_avg", "weight_field": "weight", "output": "value"},
    ]


@pytest.fixture
def shift_rows() -> list[dict]:
    return [
        {"日期": "2024-05-01", "班次": "白班", "生产周期": "2024-05",
         "氧化锌原矿-湿重（t）": 100, "氧化锌原矿-干重（t）": 90,
         "氧化锌精矿-重量（t）": 10, "氧化锌精矿-Zn品位（%）": 50,
         "氧化矿Zn理论回收率（%）": 72},
        {"日期": "2024-05-01", "班次": "夜班", "生产周期": "2024-05",
         "氧化锌原矿-湿重（t）": 80, "氧化锌原矿-干重（t）": 70,
         "氧化锌精矿-重量（t）": 30, "氧化锌精矿-Zn品位（%）": 46,
         "氧化矿Zn理论回收率（%）": 68},
    ]
