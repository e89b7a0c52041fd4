#!/usr/bin/env python3
"""
Data Loader - Builds immutable datasets from records, frames and CSV files
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .base_component import BaseComponent
from .categorical_detector import CategoricalDetector
from .constants import CONFIG_KEY_DATASETS, FieldKind
from .errors import ConfigurationError, EmptyDataset, InconsistentSchema


@dataclass(frozen=True, eq=False)
class Dataset:
    """An ordered, schema-checked table of records. Treated as read-only input."""
    frame: pd.DataFrame
    name: str = "dataset"
    schema: Dict[str, FieldKind] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def fields(self) -> List[str]:
        return list(self.schema)

    def kind_of(self, field_name: str) -> FieldKind:
        return self.schema[field_name]

    def records(self) -> List[Dict[str, Any]]:
        """Return the rows as plain dicts, in order."""
        return self.frame.to_dict(orient="records")


class DataLoader(BaseComponent):
    """Handles dataset construction, loading and cleaning operations."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        output_directory: Optional[str] = None,
        context=None,
        config_override=None,
    ):
        super().__init__(config_file, output_directory, context=context, config_override=config_override)
        self.detector = CategoricalDetector(context=self.context)
        self.datasets: Dict[str, Dataset] = {}

    def from_records(
        self,
        records: Sequence[Mapping[str, Any]],
        name: str = "records",
        categorical_fields: Optional[List[str]] = None,
        ordinal_fields: Optional[Dict[str, List[Any]]] = None,
    ) -> Dataset:
        """Build a dataset from row-oriented records that must all share one schema."""
        records = list(records)
        if not records:
            raise EmptyDataset(f"Dataset {name} has no records")

        first_fields = None
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise InconsistentSchema(f"Record {index} of {name} is not a mapping: {record!r}")
            record_fields = list(record.keys())
            if first_fields is None:
                first_fields = record_fields
                continue
            if set(record_fields) != set(first_fields):
                missing = sorted(set(first_fields) - set(record_fields))
                extra = sorted(set(record_fields) - set(first_fields))
                raise InconsistentSchema(
                    f"Record {index} of {name} does not match the schema of record 0 "
                    f"(missing: {missing}, unexpected: {extra})"
                )

        frame = pd.DataFrame.from_records(records, columns=first_fields)
        return self.from_frame(frame, name, categorical_fields, ordinal_fields)

    def from_frame(
        self,
        frame: pd.DataFrame,
        name: str = "frame",
        categorical_fields: Optional[List[str]] = None,
        ordinal_fields: Optional[Dict[str, List[Any]]] = None,
    ) -> Dataset:
        """Build a dataset from a DataFrame. The input frame is copied, never modified."""
        if len(frame) == 0:
            raise EmptyDataset(f"Dataset {name} has no records")

        declared = self.detector.apply_declarations(frame, categorical_fields, ordinal_fields)
        declared = declared.reset_index(drop=True)
        declared.columns = [str(c) for c in declared.columns]
        schema = self.detector.detect_schema(declared)
        return Dataset(frame=declared, name=name, schema=schema)

    def load_csv(
        self,
        file_path: Path,
        name: Optional[str] = None,
        loading_params: Optional[Dict[str, Any]] = None,
        categorical_fields: Optional[List[str]] = None,
        ordinal_fields: Optional[Dict[str, List[Any]]] = None,
    ) -> Dataset:
        """Load a CSV file with encoding fallbacks, clean null indicators and build a dataset."""
        file_path = Path(file_path)
        name = name or file_path.stem
        if not file_path.exists():
            raise FileNotFoundError(f"Dataset file not found: {file_path}")

        # Try multiple encodings for robust loading
        encodings = list(self.render_settings.get('encoding_fallbacks', ['utf-8', 'latin-1', 'cp1252']))

        raw_loading_params = dict(loading_params or {})
        explicit_encoding = raw_loading_params.pop('encoding', None)
        fallback_encoding = raw_loading_params.pop('fallback_encoding', None)

        # Respect explicit encoding and optional fallback from config
        if explicit_encoding:
            encodings = [explicit_encoding] + [enc for enc in encodings if enc != explicit_encoding]
        if fallback_encoding and fallback_encoding not in encodings:
            encodings.append(fallback_encoding)

        df = None
        for encoding in encodings:
            try:
                df = pd.read_csv(file_path, encoding=encoding, **raw_loading_params)
                self.logger.info(f"Loaded {name} with {encoding} encoding: {len(df):,} records, {len(df.columns)} columns")
                break
            except UnicodeDecodeError:
                continue

        if df is None:
            raise ConfigurationError(f"Could not decode {file_path} with any of {encodings}")

        cleaned = self._clean_frame(df, name)
        return self.from_frame(cleaned, name, categorical_fields, ordinal_fields)

    def _clean_frame(self, df: pd.DataFrame, name: str) -> pd.DataFrame:
        """Replace textual null indicators and re-type text columns that are numeric after cleaning."""
        cleaned_df = df.copy()
        null_indicators = self.render_settings.get('null_indicators', [])

        for col in cleaned_df.columns:
            # Text columns are object dtype, or the dedicated string dtype on newer pandas
            if not (pd.api.types.is_object_dtype(cleaned_df[col]) or pd.api.types.is_string_dtype(cleaned_df[col])):
                continue
            cleaned_df[col] = cleaned_df[col].astype(object).replace(null_indicators, np.nan)
            try:
                cleaned_df[col] = pd.to_numeric(cleaned_df[col])
            except (ValueError, TypeError):
                pass

        # Log cleaning results only if significant cleaning occurred
        original_nulls = df.isnull().sum().sum()
        cleaned_nulls = cleaned_df.isnull().sum().sum()
        if cleaned_nulls > original_nulls:
            self.logger.info(f"Data cleaning for {name}: {cleaned_nulls - original_nulls:,} additional nulls identified")

        return cleaned_df

    def load_datasets(self) -> Dict[str, Dataset]:
        """Load datasets based on configuration."""
        self.logger.info("Loading datasets...")

        for dataset_name, dataset_config in self.config.get(CONFIG_KEY_DATASETS, {}).items():
            filename = dataset_config.get('filename') or dataset_config.get('path')
            if filename is None:
                self.logger.error(f"Dataset {dataset_name} missing filename/path")
                continue

            file_path = Path(filename)
            if not file_path.is_absolute():
                file_path = self.data_dir / filename

            try:
                self.datasets[dataset_name] = self.load_csv(
                    file_path,
                    name=dataset_name,
                    loading_params=dataset_config.get('loading_params'),
                    categorical_fields=dataset_config.get('categorical_fields'),
                    ordinal_fields=dataset_config.get('ordinal_fields'),
                )
            except (FileNotFoundError, EmptyDataset, ConfigurationError) as e:
                self.logger.error(f"Failed to load dataset {dataset_name}: {e}")

        total_records = sum(len(ds) for ds in self.datasets.values())
        self.logger.info(f"Data loading completed: {len(self.datasets)} datasets, {total_records:,} total records")

        return self.datasets

    def get_dataset_summary(self) -> Dict[str, Any]:
        """Get summary information about loaded datasets."""
        summary = {}
        for dataset_name, dataset in self.datasets.items():
            summary[dataset_name] = {
                'total_records': len(dataset),
                'columns': len(dataset.fields),
                'fields': self.detector.get_field_summary(dataset.frame),
            }
        return summary
