"""Configuration and result models for the campaign matching system."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
import pandas as pd

CONTACT_COLUMNS: Tuple[str, ...] = (
    'urn', 'first', 'last', 'age',
    'addr_line', 'addr_suburb', 'addr_postcode', 'addr_state'
)
TRANSACTION_COLUMNS: Tuple[str, ...] = CONTACT_COLUMNS + ('amount',)

NAME_FIELDS: Tuple[str, ...] = ('first', 'last')
ADDRESS_FIELDS: Tuple[str, ...] = ('addr_line', 'addr_suburb', 'addr_postcode', 'addr_state')

KPI_COLUMNS: Tuple[str, ...] = (
    'num_gifts', 'response_rate', 'avg_gift',
    'total_income', 'cost', 'net_income'
)
SUGGESTION_COLUMNS: Tuple[str, ...] = (
    'original_identifier', 'candidate_identifier', 'combined_distance'
)

DUPLICATE_POLICIES = ('first', 'reject')


class MatchType(str, Enum):
    """How a transaction was linked to a contact."""
    EXACT = "Exact"
    FUZZY = "Fuzzy"
    UNMATCHED = "Unmatched"


class RecordStatus(str, Enum):
    """Classification of a reconciled record."""
    EXACT = "Exact"
    FUZZY = "Fuzzy"
    NO_MATCH = "No Match"


@dataclass(frozen=True)
class PipelineConfig:
    """Options recognised by every stage of the pipeline."""
    enable_fuzzy: bool = False
    fuzzy_threshold: float = 5.0  # Combined edit distance, accepted when strictly below
    cost_per_contact: float = 3.0
    suggest_candidates: bool = False
    duplicate_policy: str = 'first'
    block_on: Optional[str] = None  # e.g. 'addr_postcode'
    worker_processes: int = 1

    def __post_init__(self):
        """Validate option values."""
        if self.fuzzy_threshold <= 0:
            raise ValueError(
                f"fuzzy_threshold must be positive, got {self.fuzzy_threshold}"
            )
        if self.cost_per_contact < 0:
            raise ValueError(
                f"cost_per_contact must not be negative, got {self.cost_per_contact}"
            )
        if self.duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"Unknown duplicate policy: {self.duplicate_policy}"
            )
        if self.block_on is not None and self.block_on not in CONTACT_COLUMNS:
            raise ValueError(f"Cannot block on unknown column: {self.block_on}")
        if self.worker_processes < 1:
            raise ValueError(
                f"worker_processes must be at least 1, got {self.worker_processes}"
            )

        object.__setattr__(self, 'fuzzy_threshold', float(self.fuzzy_threshold))
        object.__setattr__(self, 'cost_per_contact', float(self.cost_per_contact))


@dataclass(frozen=True)
class MatchResult:
    """Link between one transaction and at most one contact."""
    transaction_index: int
    resolved_urn: Optional[int]
    original_urn: Optional[int]
    match_type: MatchType
    combined_distance: Optional[float] = None
    name_distance: Optional[float] = None
    address_distance: Optional[float] = None
    tied_candidates: int = 0

    @property
    def is_matched(self) -> bool:
        return self.match_type is not MatchType.UNMATCHED


@dataclass(frozen=True)
class FuzzyCandidate:
    """Best scoring contact for an unmatched transaction."""
    transaction_index: int
    original_identifier: Optional[int]
    candidate_identifier: int
    combined_distance: float


@dataclass(frozen=True)
class ReconciledRecord:
    """One contact, optionally enriched with a linked transaction."""
    contact: Dict[str, Any]
    transaction: Optional[Dict[str, Any]]
    match_type: RecordStatus
    original_urn: Optional[int] = None
    combined_distance: Optional[float] = None

    @property
    def has_gift(self) -> bool:
        return self.transaction is not None

    @property
    def amount(self) -> Optional[float]:
        if self.transaction is None:
            return None
        return self.transaction['amount']

    def to_row(self) -> Dict[str, Any]:
        """Flatten both sides into a single row with prefixed column names."""
        row = {f'contact_{key}': value for key, value in self.contact.items()}
        transaction = self.transaction or {}
        for key in TRANSACTION_COLUMNS + ('amount_missing',):
            row[f'transaction_{key}'] = transaction.get(key, pd.NA)
        row['match_type'] = self.match_type.value
        row['original_urn'] = self.original_urn if self.original_urn is not None else pd.NA
        row['combined_distance'] = (
            self.combined_distance if self.combined_distance is not None else pd.NA
        )
        return row


@dataclass(frozen=True)
class Reconciliation:
    """Reconciled record set together with the transactions left unmatched."""
    records: List[ReconciledRecord]
    unmatched: pd.DataFrame
    total_contacts: int
    total_transactions: int

    def __len__(self) -> int:
        return len(self.records)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([record.to_row() for record in self.records])

    def count(self, status: RecordStatus) -> int:
        return sum(1 for record in self.records if record.match_type is status)


@dataclass(frozen=True)
class CampaignMetrics:
    """Summary KPIs computed once from a reconciliation."""
    num_gifts: int
    response_rate: float
    avg_gift: float
    total_income: float
    cost: float
    net_income: float

    def to_frame(self) -> pd.DataFrame:
        """Single-row KPI table."""
        return pd.DataFrame(
            [[getattr(self, column) for column in KPI_COLUMNS]],
            columns=list(KPI_COLUMNS)
        )

    def report_lines(self) -> List[str]:
        return [
            f"Number of gifts: {self.num_gifts}",
            f"Response rate: {round(self.response_rate, 4)}",
            f"Average gift: {round(self.avg_gift, 2)}",
            f"Total income: {round(self.total_income, 2)}",
            f"Net income: {round(self.net_income, 2)}",
        ]


@dataclass
class PipelineResult:
    """Everything a run produces, surfaced to downstream collaborators."""
    reconciliation: Reconciliation
    metrics: CampaignMetrics
    match_results: List[MatchResult]
    suggestions: Optional[pd.DataFrame] = None
    warnings: List[Warning] = field(default_factory=list)

    @property
    def unmatched(self) -> pd.DataFrame:
        return self.reconciliation.unmatched
