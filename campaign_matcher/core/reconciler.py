"""Merging of exact and fuzzy links into the reconciled record set."""

from typing import Any, Dict, List
from collections import defaultdict
import pandas as pd
import logging

from campaign_matcher.config.models import (
    MatchResult,
    MatchType,
    RecordStatus,
    ReconciledRecord,
    Reconciliation
)
from campaign_matcher.config.rules import AdditionRules, UNMATCHED_REPORT_RULES
from campaign_matcher.core.errors import ReconciliationError

logger = logging.getLogger(__name__)

def _plain(value: Any) -> Any:
    """Convert pandas scalars to plain Python values, missing to None."""
    if pd.isna(value):
        return None
    if hasattr(value, 'item'):
        return value.item()
    return value

def _as_dict(row: pd.Series) -> Dict[str, Any]:
    return {column: _plain(value) for column, value in row.items()}

class Reconciler:
    """Builds one record per contact and linked transaction."""

    def __init__(self, report_rules: AdditionRules = UNMATCHED_REPORT_RULES):
        self.report_rules = report_rules

    def reconcile(
        self,
        contacts: pd.DataFrame,
        transactions: pd.DataFrame,
        results: List[MatchResult]
    ) -> Reconciliation:
        """
        Merge match results with the source tables.

        Args:
            contacts: Normalized contacts
            transactions: Normalized transactions indexed by input position
            results: Exactly one MatchResult per transaction

        Returns:
            Reconciliation: Records in contact order, plus the unmatched
            transactions report

        Raises:
            ReconciliationError: If results do not cover every transaction
                exactly once or link to an unknown contact
        """
        self._check_results(contacts, transactions, results)

        links: Dict[int, List[MatchResult]] = defaultdict(list)
        unmatched_indexes = []
        for result in sorted(results, key=lambda r: r.transaction_index):
            if result.is_matched:
                links[result.resolved_urn].append(result)
            else:
                unmatched_indexes.append(result.transaction_index)

        records = []
        for _, contact_row in contacts.iterrows():
            contact = _as_dict(contact_row)
            contact_links = links.get(contact['urn'], [])

            if not contact_links:
                records.append(ReconciledRecord(
                    contact=contact,
                    transaction=None,
                    match_type=RecordStatus.NO_MATCH
                ))
                continue

            for result in contact_links:
                transaction = _as_dict(transactions.loc[result.transaction_index])
                records.append(ReconciledRecord(
                    contact=contact,
                    transaction=transaction,
                    match_type=self._classify(result, transaction),
                    original_urn=result.original_urn,
                    combined_distance=result.combined_distance
                ))

        unmatched = transactions.loc[
            unmatched_indexes,
            self.report_rules.select(transactions.columns)
        ].copy()

        reconciliation = Reconciliation(
            records=records,
            unmatched=unmatched,
            total_contacts=len(contacts),
            total_transactions=len(transactions)
        )
        logger.info(
            f"Reconciled {len(records)} records: "
            f"{reconciliation.count(RecordStatus.EXACT)} exact, "
            f"{reconciliation.count(RecordStatus.FUZZY)} fuzzy, "
            f"{reconciliation.count(RecordStatus.NO_MATCH)} without a gift"
        )
        return reconciliation

    @staticmethod
    def _classify(result: MatchResult, transaction: Dict[str, Any]) -> RecordStatus:
        # Fuzzy origin overrides the amount-derived label
        if result.match_type is MatchType.FUZZY:
            return RecordStatus.FUZZY
        if transaction.get('amount_missing'):
            return RecordStatus.NO_MATCH
        return RecordStatus.EXACT

    @staticmethod
    def _check_results(
        contacts: pd.DataFrame,
        transactions: pd.DataFrame,
        results: List[MatchResult]
    ) -> None:
        indexes = [result.transaction_index for result in results]
        if len(indexes) != len(set(indexes)):
            raise ReconciliationError("A transaction received more than one match result")
        if set(indexes) != set(transactions.index):
            raise ReconciliationError(
                f"Match results cover {len(set(indexes))} of "
                f"{len(transactions)} transactions"
            )

        contact_urns = set(int(urn) for urn in contacts['urn'])
        unknown = sorted(
            result.resolved_urn for result in results
            if result.is_matched and result.resolved_urn not in contact_urns
        )
        if unknown:
            raise ReconciliationError(f"Results link to unknown contacts: {unknown}")
