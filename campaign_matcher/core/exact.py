"""Deterministic identifier matching of transactions to contacts."""

from dataclasses import dataclass, field
from typing import List
import pandas as pd
import logging

from campaign_matcher.config.models import MatchResult, MatchType

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ExactMatchOutcome:
    """Partition of transactions produced by identifier matching."""
    unmatched: pd.DataFrame
    results: List[MatchResult]
    contacts: pd.DataFrame = field(repr=False)
    linked: pd.DataFrame = field(repr=False)

    @property
    def matched(self) -> pd.DataFrame:
        """
        Left-outer join keeping every contact, built on demand.

        The pipeline does not read it: the reconciler rebuilds the same
        pairing from ``results``.
        """
        return self.contacts.merge(
            self.linked.rename_axis('transaction_index').reset_index(),
            on='urn',
            how='left',
            suffixes=('_contact', '_transaction')
        )

class ExactMatcher:
    """Joins normalized transactions to normalized contacts by ``urn``."""

    def match(
        self,
        contacts: pd.DataFrame,
        transactions: pd.DataFrame
    ) -> ExactMatchOutcome:
        """
        Link transactions whose claimed identifier belongs to a contact.

        Args:
            contacts: Normalized contacts with unique ``urn``
            transactions: Normalized transactions, indexed by input position

        Returns:
            ExactMatchOutcome: The transactions without a counterpart, one
            EXACT result per linked transaction, and the left-outer join
            keeping every contact as ``matched``
        """
        known = transactions['urn'].notna() & transactions['urn'].isin(contacts['urn'].dropna())
        known = known.fillna(False).astype(bool)

        linked = transactions.loc[known]
        unmatched = transactions.loc[~known].copy()

        results = [
            MatchResult(
                transaction_index=int(index),
                resolved_urn=int(urn),
                original_urn=int(urn),
                match_type=MatchType.EXACT
            )
            for index, urn in linked['urn'].items()
        ]

        logger.info(
            f"Exact matching linked {len(results)} of {len(transactions)} "
            f"transactions; {len(unmatched)} left unmatched"
        )
        return ExactMatchOutcome(
            unmatched=unmatched,
            results=results,
            contacts=contacts,
            linked=linked
        )
