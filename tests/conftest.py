from __future__ import annotations

import pandas as pd
import pytest

from chart_renderer import ChartRenderer, DataLoader


@pytest.fixture
def renderer() -> ChartRenderer:
    return ChartRenderer()


@pytest.fixture
def loader() -> DataLoader:
    return DataLoader()


@pytest.fixture
def car_records() -> list[dict]:
    """Five cars: weight (1000 lbs) and mileage (mpg)."""
    return [
        {"weight": 2.5, "mileage": 31.0, "origin": "asia"},
        {"weight": 3.1, "mileage": 26.0, "origin": "europe"},
        {"weight": 3.6, "mileage": 21.0, "origin": "usa"},
        {"weight": 2.2, "mileage": 34.0, "origin": "asia"},
        {"weight": 4.0, "mileage": 17.0, "origin": "usa"},
    ]


@pytest.fixture
def mpg_frame() -> pd.DataFrame:
    """Small fuel-economy table with three classes, two drive trains and three cylinder counts."""
    return pd.DataFrame(
        {
            "displ": [1.8, 2.0, 2.8, 3.1, 4.2, 5.3, 5.7, 1.6, 2.4, 4.7, 3.8, 2.5],
            "hwy": [29, 31, 26, 27, 20, 17, 15, 33, 28, 19, 22, 27],
            "cty": [18, 21, 16, 18, 14, 12, 11, 24, 19, 13, 15, 18],
            "cyl": [4, 4, 6, 6, 8, 8, 8, 4, 4, 8, 6, 4],
            "drv": ["f", "f", "f", "4", "4", "r", "r", "f", "4", "4", "f", "4"],
            "class": [
                "compact", "compact", "midsize", "midsize", "suv", "suv",
                "suv", "compact", "midsize", "suv", "midsize", "compact",
            ],
        }
    )
