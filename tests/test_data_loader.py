from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from chart_renderer import DataLoader, EmptyDataset, FieldKind, InconsistentSchema
from chart_renderer.core.errors import ConfigurationError


def test_from_records_keeps_order_and_detects_kinds(loader: DataLoader, car_records: list[dict]) -> None:
    dataset = loader.from_records(car_records, name="cars")

    assert len(dataset) == 5
    assert dataset.name == "cars"
    assert dataset.fields == ["weight", "mileage", "origin"]
    assert dataset.schema == {
        "weight": FieldKind.NUMERIC,
        "mileage": FieldKind.NUMERIC,
        "origin": FieldKind.CATEGORICAL,
    }
    assert dataset.records() == car_records


def test_from_records_requires_one_schema(loader: DataLoader) -> None:
    with pytest.raises(InconsistentSchema) as excinfo:
        loader.from_records([{"weight": 2.5, "mileage": 31.0}, {"weight": 3.1, "mpg": 26.0}])
    assert "mileage" in str(excinfo.value)
    assert "mpg" in str(excinfo.value)

    with pytest.raises(InconsistentSchema):
        loader.from_records([{"weight": 2.5}, [3.1]])


def test_key_order_does_not_matter(loader: DataLoader) -> None:
    dataset = loader.from_records([{"a": 1, "b": "x"}, {"b": "y", "a": 2}])
    assert dataset.frame["a"].tolist() == [1, 2]
    assert dataset.frame["b"].tolist() == ["x", "y"]


def test_empty_inputs(loader: DataLoader) -> None:
    with pytest.raises(EmptyDataset):
        loader.from_records([])
    with pytest.raises(EmptyDataset):
        loader.from_frame(pd.DataFrame(columns=["a", "b"]))


def test_from_frame_copies_input(loader: DataLoader) -> None:
    frame = pd.DataFrame({"cyl": [4, 6, 8]}, index=[10, 20, 30])
    dataset = loader.from_frame(frame, categorical_fields=["cyl"])

    assert dataset.kind_of("cyl") == FieldKind.CATEGORICAL
    assert list(dataset.frame.index) == [0, 1, 2]
    assert frame["cyl"].dtype == "int64"
    assert list(frame.index) == [10, 20, 30]


def test_ordinal_declaration(loader: DataLoader) -> None:
    frame = pd.DataFrame({"cut": ["Good", "Ideal", "Fair"], "price": [400, 900, 300]})
    dataset = loader.from_frame(frame, ordinal_fields={"cut": ["Fair", "Good", "Ideal"]})

    assert dataset.kind_of("cut") == FieldKind.ORDINAL
    assert list(dataset.frame["cut"].cat.categories) == ["Fair", "Good", "Ideal"]


def test_load_csv_cleans_null_indicators(tmp_path: Path) -> None:
    csv_file = tmp_path / "cars.csv"
    csv_file.write_text("model,weight,mileage\nalpha,2.5,31\nbeta,-,26\ngamma,3.6,?\n", encoding="utf-8")

    loader = DataLoader(config_override={"render_defaults": {"null_indicators": ["-", "?"]}})
    dataset = loader.load_csv(csv_file)

    assert dataset.name == "cars"
    assert dataset.kind_of("weight") == FieldKind.NUMERIC
    assert dataset.kind_of("mileage") == FieldKind.NUMERIC
    assert dataset.kind_of("model") == FieldKind.CATEGORICAL
    assert dataset.frame["weight"].isnull().tolist() == [False, True, False]
    assert dataset.frame["mileage"].isnull().tolist() == [False, False, True]


def test_load_csv_falls_back_to_latin1(loader: DataLoader, tmp_path: Path) -> None:
    csv_file = tmp_path / "brands.csv"
    csv_file.write_bytes("brand,weight\nCitro\xebn,2.9\nSkoda,2.7\n".encode("latin-1"))

    dataset = loader.load_csv(csv_file, name="brands")
    assert dataset.frame["brand"].tolist() == ["Citro\xebn", "Skoda"]


def test_load_csv_missing_file(loader: DataLoader, tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        loader.load_csv(tmp_path / "missing.csv")


def test_load_csv_undecodable(tmp_path: Path) -> None:
    csv_file = tmp_path / "bad.csv"
    csv_file.write_bytes("name\nCitro\xebn\n".encode("latin-1"))

    loader = DataLoader(config_override={"render_defaults": {"encoding_fallbacks": ["utf-8"]}})
    with pytest.raises(ConfigurationError):
        loader.load_csv(csv_file, loading_params={"encoding": "ascii"})


def test_load_datasets_from_config(tmp_path: Path) -> None:
    (tmp_path / "cars.csv").write_text("weight,mileage,cyl\n2.5,31,4\n3.6,21,6\n", encoding="utf-8")
    config_file = tmp_path / "charts.yaml"
    config_file.write_text(
        "datasets:\n"
        "  cars:\n"
        "    filename: cars.csv\n"
        "    categorical_fields: [cyl]\n"
        "  missing:\n"
        "    filename: nowhere.csv\n",
        encoding="utf-8",
    )

    loader = DataLoader(str(config_file))
    datasets = loader.load_datasets()

    assert list(datasets) == ["cars"]
    assert datasets["cars"].kind_of("cyl") == FieldKind.CATEGORICAL
    summary = loader.get_dataset_summary()
    assert summary["cars"]["total_records"] == 2
    assert summary["cars"]["fields"]["cyl"]["kind"] == "categorical"


def test_load_csv_cleans_string_dtype_columns(tmp_path: Path) -> None:
    csv_file = tmp_path / "cars.csv"
    csv_file.write_text("model,weight\nalpha,2.5\nbeta,-\ngamma,3.6\n", encoding="utf-8")

    loader = DataLoader(config_override={"render_defaults": {"null_indicators": ["-"]}})
    dataset = loader.load_csv(csv_file, loading_params={"dtype": {"model": "string", "weight": "string"}})

    assert dataset.kind_of("weight") == FieldKind.NUMERIC
    assert dataset.frame["weight"].isnull().tolist() == [False, True, False]
    assert dataset.frame["weight"].dropna().tolist() == [2.5, 3.6]
    assert dataset.kind_of("model") == FieldKind.CATEGORICAL


def test_ordinal_values_outside_declared_levels_are_rejected(loader: DataLoader) -> None:
    frame = pd.DataFrame({"cut": ["Good", "Ideal", "Astor"], "price": [400, 900, 12000]})
    with pytest.raises(ConfigurationError) as excinfo:
        loader.from_frame(frame, ordinal_fields={"cut": ["Fair", "Good", "Ideal"]})
    assert "Astor" in str(excinfo.value)
