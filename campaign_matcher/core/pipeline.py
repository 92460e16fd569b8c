"""End-to-end reconciliation of a campaign mailing list and its transactions."""

from typing import List
import pandas as pd
import logging
import time

from campaign_matcher.config.models import PipelineConfig, PipelineResult
from campaign_matcher.config.rules import AdditionRules, UNMATCHED_REPORT_RULES
from campaign_matcher.core.preprocessor import RecordNormalizer
from campaign_matcher.core.exact import ExactMatcher
from campaign_matcher.core.matcher import (
    FuzzyMatcher,
    suggestions_frame,
    unmatched_result
)
from campaign_matcher.core.reconciler import Reconciler
from campaign_matcher.core.analyzer import CampaignAnalyzer
from campaign_matcher.core.errors import DataQualityWarning

class ReconciliationPipeline:
    """
    Runs Normalizer -> Exact Matcher -> Fuzzy Matcher -> Reconciler ->
    Metrics Aggregator on in-memory tables.
    """

    def __init__(
        self,
        config: PipelineConfig = None,
        report_rules: AdditionRules = UNMATCHED_REPORT_RULES
    ):
        """
        Initialize the pipeline.

        Args:
            config: Pipeline options, defaults to ``PipelineConfig()``
            report_rules: Columns carried by the unmatched transactions report
        """
        self.config = config or PipelineConfig()
        self.report_rules = report_rules
        self._initialize_logging()

    def _initialize_logging(self) -> None:
        """Setup logging configuration."""
        self.logger = logging.getLogger(__name__)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter(
                    '%(asctime)s - %(levelname)s - %(message)s'
                )
            )
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def run(
        self,
        contacts: pd.DataFrame,
        transactions: pd.DataFrame
    ) -> PipelineResult:
        """
        Reconcile transactions against contacts and compute KPIs.

        Args:
            contacts: Raw contacts table
            transactions: Raw transactions table

        Returns:
            PipelineResult: Reconciled records, metrics, unmatched report,
            optional candidate suggestions and accumulated warnings

        Raises:
            SchemaError: If required columns are missing or malformed
            TypeCoercionError: If a declared numeric field is invalid
            DegenerateInputError: If the metrics are undefined
        """
        start_time = time.time()
        warnings: List[DataQualityWarning] = []

        normalizer = RecordNormalizer(self.config)
        contacts = normalizer.normalize_contacts(contacts)
        transactions = normalizer.normalize_transactions(transactions)
        warnings.extend(normalizer.warnings)

        exact = ExactMatcher().match(contacts, transactions)
        results = list(exact.results)

        suggestions = None
        unmatched = exact.unmatched
        if not unmatched.empty and (self.config.enable_fuzzy or self.config.suggest_candidates):
            fuzzy = FuzzyMatcher(self.config)
            fuzzy_results, candidates = fuzzy.match(
                contacts,
                unmatched,
                accept=self.config.enable_fuzzy
            )
            warnings.extend(fuzzy.warnings)
            results.extend(fuzzy_results)
            if self.config.suggest_candidates:
                suggestions = suggestions_frame(candidates)
        else:
            results.extend(
                unmatched_result(index, None if pd.isna(urn) else int(urn))
                for index, urn in unmatched['urn'].items()
            )
            if self.config.suggest_candidates:
                suggestions = suggestions_frame([])

        reconciliation = Reconciler(self.report_rules).reconcile(
            contacts, transactions, results
        )
        if not reconciliation.unmatched.empty:
            message = (
                f"{len(reconciliation.unmatched)} transactions could not be "
                f"matched to a contact"
            )
            self.logger.warning(message)
            warnings.append(DataQualityWarning(message))

        metrics = CampaignAnalyzer(self.config).compute_metrics(reconciliation)

        self.logger.info(
            f"Reconciliation completed in {time.time() - start_time:.2f} seconds"
        )
        return PipelineResult(
            reconciliation=reconciliation,
            metrics=metrics,
            match_results=sorted(results, key=lambda r: r.transaction_index),
            suggestions=suggestions,
            warnings=warnings
        )
