"""Normalization of raw contact and transaction tables into comparable keys."""

from typing import Any, Dict, List, Sequence, Type
from abc import ABC, abstractmethod
import pandas as pd
import numpy as np
import unicodedata
import logging

from campaign_matcher.config.models import (
    PipelineConfig,
    CONTACT_COLUMNS,
    TRANSACTION_COLUMNS,
    NAME_FIELDS,
    ADDRESS_FIELDS
)
from campaign_matcher.core.errors import (
    SchemaError,
    TypeCoercionError,
    DataQualityWarning
)

logger = logging.getLogger(__name__)

INTEGER_COLUMNS = ('urn', 'age', 'addr_postcode')

class BasePreprocessor(ABC):
    """Base class for preprocessors with common functionality."""

    @abstractmethod
    def process(self, value: Any) -> str:
        """Process a value into a standardized string format."""
        pass

    def _handle_null(self, value: Any) -> bool:
        """Check if value is null/empty."""
        return pd.isna(value)

class NamePreprocessor(BasePreprocessor):
    """Lowercases free text and collapses whitespace."""

    def __init__(self, lowercase: bool = True, remove_accents: bool = False):
        self.lowercase = lowercase
        self.remove_accents = remove_accents

    def process(self, value: Any) -> str:
        if self._handle_null(value):
            return ''

        text = str(value)

        if self.lowercase:
            text = text.lower()

        if self.remove_accents:
            text = ''.join(
                c for c in unicodedata.normalize('NFD', text)
                if unicodedata.category(c) != 'Mn'
            )

        return ' '.join(text.split())

class PostalCodePreprocessor(BasePreprocessor):
    """Renders coerced postcodes without internal whitespace."""

    def process(self, value: Any) -> str:
        if self._handle_null(value):
            return ''
        return ''.join(str(value).split())

class PreprocessorRegistry:
    """Registry for preprocessor types and instances."""

    def __init__(self):
        self._preprocessors: Dict[str, Type[BasePreprocessor]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register default preprocessors."""
        self.register('name', NamePreprocessor)
        self.register('postal_code', PostalCodePreprocessor)

    def register(self, name: str, preprocessor_class: Type[BasePreprocessor]) -> None:
        """
        Register a new preprocessor type.

        Args:
            name: Name to register the preprocessor under
            preprocessor_class: Preprocessor class to register
        """
        self._preprocessors[name] = preprocessor_class

    def create(
        self,
        name: str,
        **kwargs: Any
    ) -> BasePreprocessor:
        """
        Create a preprocessor instance.

        Args:
            name: Name of the preprocessor type
            **kwargs: Configuration parameters for the preprocessor

        Returns:
            BasePreprocessor: Configured preprocessor instance

        Raises:
            ValueError: If preprocessor type not found
        """
        preprocessor_class = self._preprocessors.get(name)
        if not preprocessor_class:
            raise ValueError(f"Unknown preprocessor type: {name}")

        return preprocessor_class(**kwargs)

def check_columns(frame: pd.DataFrame, required: Sequence[str], table: str) -> None:
    """Raise SchemaError when any required column is absent."""
    missing = [column for column in required if column not in frame.columns]
    if missing:
        raise SchemaError(
            f"{table} is missing required columns: {', '.join(missing)}"
        )

class RecordNormalizer:
    """
    Produces normalized copies of contact and transaction tables.

    Declared numeric columns are coerced to their types, ``full_name`` and
    ``full_address`` keys are derived, and original fields are kept for
    display. Data quality problems that do not abort the run are collected
    in ``warnings``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        registry: PreprocessorRegistry = None
    ):
        self.config = config
        self.registry = registry or PreprocessorRegistry()
        self.warnings: List[DataQualityWarning] = []

        self.field_preprocessors: Dict[str, BasePreprocessor] = {
            column: self.registry.create('name')
            for column in NAME_FIELDS + ADDRESS_FIELDS
        }
        self.field_preprocessors['addr_postcode'] = self.registry.create('postal_code')

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(DataQualityWarning(message))

    def normalize_contacts(self, contacts: pd.DataFrame) -> pd.DataFrame:
        """
        Normalize the mailing list.

        Args:
            contacts: Raw contacts table

        Returns:
            pd.DataFrame: Contacts with unique integer ``urn`` and derived keys

        Raises:
            SchemaError: If columns are missing or duplicates are rejected
            TypeCoercionError: If a numeric field or the identifier is invalid
        """
        check_columns(contacts, CONTACT_COLUMNS, 'contacts')
        frame = contacts.copy().reset_index(drop=True)

        for column in INTEGER_COLUMNS:
            frame[column] = self._coerce(frame, column, integer=True, strict=True)

        missing_urn = frame['urn'].isna().to_numpy()
        if missing_urn.any():
            row = int(np.flatnonzero(missing_urn)[0])
            raise TypeCoercionError('urn', row, contacts['urn'].iloc[row])

        duplicated = frame['urn'].duplicated(keep='first')
        if duplicated.any():
            duplicate_urns = sorted(int(urn) for urn in frame.loc[duplicated, 'urn'].unique())
            if self.config.duplicate_policy == 'reject':
                raise SchemaError(
                    f"contacts contain duplicate identifiers: {duplicate_urns}"
                )
            self._warn(
                f"Collapsed {int(duplicated.sum())} duplicate contact rows to their "
                f"first occurrence (urns {duplicate_urns})"
            )
            frame = frame.loc[~duplicated].reset_index(drop=True)

        self._add_keys(frame)
        logger.info(f"Normalized {len(frame)} contacts")
        return frame

    def normalize_transactions(self, transactions: pd.DataFrame) -> pd.DataFrame:
        """
        Normalize received transactions.

        The claimed ``urn`` may be absent or unparseable, in which case it
        becomes ``<NA>`` and the transaction can only be linked by fuzzy
        matching. A missing ``amount`` is imputed as 0 and flagged in
        ``amount_missing``.
        """
        check_columns(transactions, TRANSACTION_COLUMNS, 'transactions')
        frame = transactions.copy().reset_index(drop=True)

        frame['urn'] = self._coerce(frame, 'urn', integer=True, strict=False)
        for column in ('age', 'addr_postcode'):
            frame[column] = self._coerce(frame, column, integer=True, strict=True)

        amount = self._coerce(frame, 'amount', integer=False, strict=True)
        frame['amount_missing'] = amount.isna().to_numpy()
        frame['amount'] = amount.fillna(0.0)
        if frame['amount_missing'].any():
            self._warn(
                f"Imputed amount 0 for {int(frame['amount_missing'].sum())} "
                f"transactions with a missing amount"
            )

        self._add_keys(frame)
        logger.info(f"Normalized {len(frame)} transactions")
        return frame

    def _coerce(
        self,
        frame: pd.DataFrame,
        column: str,
        integer: bool,
        strict: bool
    ) -> pd.Series:
        """
        Convert a column to a nullable integer or float series.

        Blank strings count as missing. A present value that cannot be
        converted raises TypeCoercionError when ``strict``, otherwise it is
        replaced with a missing value and reported as a warning.
        """
        raw = frame[column].map(lambda v: v.strip() if isinstance(v, str) else v)
        blank = raw.isna() | raw.eq('')
        converted = pd.to_numeric(raw.where(~blank), errors='coerce').astype('float64')

        invalid = (converted.isna() & ~blank) | np.isinf(converted)
        if integer:
            invalid |= converted.notna() & (converted % 1 != 0)

        if invalid.any():
            positions = np.flatnonzero(invalid.to_numpy())
            if strict:
                row = int(positions[0])
                raise TypeCoercionError(column, row, frame[column].iloc[row])
            self._warn(
                f"Column '{column}': {len(positions)} unparseable values treated as "
                f"missing (rows {positions.tolist()})"
            )
            converted = converted.mask(invalid)

        if integer:
            return converted.astype('Int64')
        return converted

    def _add_keys(self, frame: pd.DataFrame) -> None:
        frame['full_name'] = self._build_key(frame, NAME_FIELDS)
        frame['full_address'] = self._build_key(frame, ADDRESS_FIELDS)

    def _build_key(self, frame: pd.DataFrame, fields: Sequence[str]) -> pd.Series:
        """Join the processed fields with single spaces, skipping empty parts."""
        columns = [
            frame[field].map(self.field_preprocessors[field].process).tolist()
            for field in fields
        ]
        keys = [' '.join(part for part in parts if part) for parts in zip(*columns)]
        return pd.Series(keys, index=frame.index, dtype=object)
