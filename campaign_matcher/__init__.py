"""
Campaign Matcher
================

Reconciles a fundraising campaign's mailing list against received payment
transactions and reports how the campaign performed.

Key Features:
- Exact matching on the contact identifier (urn)
- Fuzzy fallback scoring names and addresses by Levenshtein distance
- Reconciled records keeping an audit trail of claimed vs. resolved identifiers
- Campaign KPIs: response rate, average gift, net income
- Optional postcode blocking and threaded scoring for larger lists
"""

from campaign_matcher.core.pipeline import ReconciliationPipeline
from campaign_matcher.core.errors import (
    ReconciliationError,
    SchemaError,
    TypeCoercionError,
    DegenerateInputError,
    DataQualityWarning
)

from campaign_matcher.config.models import (
    PipelineConfig,
    PipelineResult,
    CampaignMetrics,
    MatchResult,
    MatchType,
    RecordStatus,
    ReconciledRecord,
    Reconciliation
)
from campaign_matcher.config.rules import AdditionRules, ColumnRule

__version__ = "1.0.0"
