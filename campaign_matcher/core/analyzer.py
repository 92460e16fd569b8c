"""Campaign performance metrics computed from a reconciliation."""

from typing import Sequence
import pandas as pd
import numpy as np
import logging

from campaign_matcher.config.models import (
    CampaignMetrics,
    PipelineConfig,
    RecordStatus,
    Reconciliation
)
from campaign_matcher.core.errors import DegenerateInputError

logger = logging.getLogger(__name__)

DEFAULT_AGE_BINS = (0, 30, 45, 60, 75, 120)

class CampaignAnalyzer:
    """Derives KPIs and summary tables from reconciled records."""

    def __init__(self, config: PipelineConfig):
        self.config = config

    def compute_metrics(self, reconciliation: Reconciliation) -> CampaignMetrics:
        """
        Compute the campaign KPIs.

        A gift is any record linked to a transaction; missing amounts were
        imputed as 0 during normalization and still count.

        Args:
            reconciliation: Output of the reconciler

        Returns:
            CampaignMetrics: Snapshot of the campaign performance

        Raises:
            DegenerateInputError: If there are no contacts or no gifts
        """
        total_contacts = reconciliation.total_contacts
        if total_contacts == 0:
            raise DegenerateInputError("Cannot compute metrics without contacts")

        amounts = np.array(
            [record.amount for record in reconciliation.records if record.has_gift],
            dtype=float
        )
        num_gifts = len(amounts)
        if num_gifts == 0:
            if reconciliation.total_transactions == 0:
                raise DegenerateInputError(
                    "Cannot compute metrics without transactions; average gift is undefined"
                )
            raise DegenerateInputError(
                f"All {reconciliation.total_transactions} transactions went unmatched, "
                f"so average gift is undefined; check the unmatched transactions "
                f"({len(reconciliation.unmatched)} rows) for identifier or name problems"
            )

        total_income = float(amounts.sum())
        cost = self.config.cost_per_contact * total_contacts

        metrics = CampaignMetrics(
            num_gifts=num_gifts,
            response_rate=num_gifts / total_contacts,
            avg_gift=total_income / num_gifts,
            total_income=total_income,
            cost=cost,
            net_income=total_income - cost
        )
        logger.info(
            f"Computed metrics: {num_gifts} gifts, response rate "
            f"{metrics.response_rate:.4f}, net income {metrics.net_income:.2f}"
        )
        return metrics

    @staticmethod
    def match_type_breakdown(
        reconciliation: Reconciliation,
        by: str = 'addr_state'
    ) -> pd.DataFrame:
        """
        Count records per contact attribute and match type.

        Args:
            reconciliation: Output of the reconciler
            by: Contact column to group on

        Returns:
            pd.DataFrame: Columns ``[by, 'match_type', 'count']``
        """
        frame = pd.DataFrame(
            [
                (record.contact.get(by), record.match_type.value)
                for record in reconciliation.records
            ],
            columns=[by, 'match_type']
        )
        return (
            frame.groupby([by, 'match_type'], dropna=False)
            .size()
            .reset_index(name='count')
            .sort_values([by, 'match_type'], kind='mergesort')
            .reset_index(drop=True)
        )

    @staticmethod
    def donor_frame(
        reconciliation: Reconciliation,
        age_bins: Sequence[int] = DEFAULT_AGE_BINS
    ) -> pd.DataFrame:
        """
        Donor rows for reporting, with contact age grouped into bins.

        Args:
            reconciliation: Output of the reconciler
            age_bins: Bin edges for ``pd.cut``

        Returns:
            pd.DataFrame: One row per gift with contact fields, amount,
            match type and ``age_bin``
        """
        rows = [
            {
                **record.contact,
                'amount': record.amount,
                'match_type': record.match_type.value
            }
            for record in reconciliation.records
            if record.has_gift and record.match_type is not RecordStatus.NO_MATCH
        ]
        donors = pd.DataFrame(rows, columns=None if rows else ['age', 'amount', 'match_type'])
        donors['age_bin'] = pd.cut(pd.to_numeric(donors['age']), bins=list(age_bins))
        return donors
