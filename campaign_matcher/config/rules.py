"""Column selection rules for the reconciliation reports."""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional
from dataclasses import dataclass
import regex as re

class ColumnRule(ABC):
    """Base class for column selection rules."""

    @abstractmethod
    def should_add_column(self, column_name: str, source_columns: List[str]) -> bool:
        """
        Determine if a column should be added to a report.

        Args:
            column_name: Name of the column being considered
            source_columns: All columns of the table being reported on

        Returns:
            bool: Whether the column should be added
        """
        pass

class NamedColumnsRule(ColumnRule):
    """Select an explicit set of columns."""

    def __init__(self, columns: Iterable[str]):
        self.columns = frozenset(columns)

    def should_add_column(self, column_name: str, source_columns: List[str]) -> bool:
        return column_name in self.columns

class PatternRule(ColumnRule):
    """Select columns matching a regex pattern."""

    def __init__(self, pattern: str):
        self.pattern = re.compile(pattern)

    def should_add_column(self, column_name: str, source_columns: List[str]) -> bool:
        return bool(self.pattern.fullmatch(column_name))

@dataclass
class AdditionRules:
    """Configuration for which columns a report carries."""

    include_rules: List[ColumnRule]
    exclude_columns: Optional[List[str]] = None

    def should_add_column(self, column_name: str, source_columns: List[str]) -> bool:
        """
        Determine if a column should be added based on all rules.

        Args:
            column_name: Name of the column being considered
            source_columns: All columns of the table being reported on

        Returns:
            bool: Whether the column should be added
        """
        if self.exclude_columns and column_name in self.exclude_columns:
            return False

        return any(
            rule.should_add_column(column_name, source_columns)
            for rule in self.include_rules
        )

    def select(self, columns: Iterable[str]) -> List[str]:
        """Filter columns, keeping their original order."""
        columns = list(columns)
        return [
            column for column in columns
            if self.should_add_column(column, columns)
        ]

UNMATCHED_REPORT_RULES = AdditionRules(
    include_rules=[
        NamedColumnsRule(['urn', 'first', 'last', 'amount']),
        PatternRule(r'addr_.*')
    ],
    exclude_columns=['full_name', 'full_address']
)
