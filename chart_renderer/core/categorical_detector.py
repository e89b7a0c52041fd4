#!/usr/bin/env python3
"""
Categorical Detector - Classification of dataset fields into value kinds
"""

import pandas as pd
from typing import Dict, List, Any, Optional
from .base_component import BaseComponent
from .constants import FieldKind
from .errors import ConfigurationError


class CategoricalDetector(BaseComponent):
    """Classifies dataset fields as numeric, temporal, ordinal or categorical."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        output_directory: Optional[str] = None,
        context=None,
        config_override=None,
    ):
        super().__init__(config_file, output_directory, context=context, config_override=config_override)

    def classify_field(self, series: pd.Series) -> FieldKind:
        """Determine the value kind of a single field from its dtype."""
        if isinstance(series.dtype, pd.CategoricalDtype):
            return FieldKind.ORDINAL if series.cat.ordered else FieldKind.CATEGORICAL

        # Booleans are numeric to numpy but encode two unordered categories
        if pd.api.types.is_bool_dtype(series):
            return FieldKind.CATEGORICAL

        if pd.api.types.is_datetime64_any_dtype(series) or pd.api.types.is_timedelta64_dtype(series):
            return FieldKind.TEMPORAL

        if pd.api.types.is_numeric_dtype(series):
            return FieldKind.NUMERIC

        # Object columns holding only numbers (e.g. built from records with None gaps)
        non_null = series.dropna()
        if len(non_null) > 0 and non_null.map(self._is_number).all():
            return FieldKind.NUMERIC

        return FieldKind.CATEGORICAL

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def detect_schema(self, df: pd.DataFrame) -> Dict[str, FieldKind]:
        """Classify every field of a dataset, preserving column order."""
        schema = {str(column): self.classify_field(df[column]) for column in df.columns}

        continuous = [name for name, kind in schema.items() if kind.is_continuous]
        discrete = [name for name, kind in schema.items() if not kind.is_continuous]
        self.logger.debug(f"Detected {len(continuous)} continuous and {len(discrete)} discrete fields")
        return schema

    def apply_declarations(
        self,
        df: pd.DataFrame,
        categorical_fields: Optional[List[str]] = None,
        ordinal_fields: Optional[Dict[str, List[Any]]] = None,
    ) -> pd.DataFrame:
        """
        Apply explicit kind declarations to a copy of the frame.

        Args:
            df: Source frame (left untouched)
            categorical_fields: Fields to treat as unordered categories even if numeric
            ordinal_fields: Field -> ordered list of levels

        Returns:
            Frame with declared fields converted to pandas categoricals

        Raises:
            ConfigurationError: if an ordinal field holds values missing from its declared levels
        """
        declared = df.copy()

        for field in categorical_fields or []:
            if field not in declared.columns:
                self.logger.warning(f"Declared categorical field not found: {field}")
                continue
            declared[field] = pd.Categorical(declared[field], ordered=False)

        for field, levels in (ordinal_fields or {}).items():
            if field not in declared.columns:
                self.logger.warning(f"Declared ordinal field not found: {field}")
                continue
            if levels:
                unknown = set(declared[field].dropna().unique()) - set(levels)
                if unknown:
                    raise ConfigurationError(
                        f"Ordinal field {field} has values outside its declared levels: {sorted(map(str, unknown))}"
                    )
                declared[field] = pd.Categorical(declared[field], categories=list(levels), ordered=True)
            else:
                # Without explicit levels keep the natural sort order
                declared[field] = pd.Categorical(declared[field], ordered=True)

        return declared

    def get_field_summary(self, df: pd.DataFrame) -> Dict[str, Any]:
        """Get summary of each field's kind, distinct values and missing share."""
        total = len(df)
        summary = {}
        for column, kind in self.detect_schema(df).items():
            series = df[column]
            summary[column] = {
                'kind': kind.value,
                'distinct_values': int(series.nunique(dropna=True)),
                'null_percentage': float(series.isnull().sum() / total) if total > 0 else 0.0,
            }
        return summary
