"""Example usage of the campaign matcher with CSV files."""

import pandas as pd
import logging
from pathlib import Path
from typing import Optional, Tuple

from campaign_matcher.config.models import PipelineConfig, PipelineResult
from campaign_matcher.core.analyzer import CampaignAnalyzer
from campaign_matcher.core.pipeline import ReconciliationPipeline


def load_campaign(
    contacts_path: Path,
    transactions_path: Path
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Read the mailing list and the received transactions.

    Columns are read as text; typing happens during normalization so that
    coercion errors are reported with their column and row.
    """
    logging.info(f"Reading contacts file: {contacts_path}")
    contacts = pd.read_csv(contacts_path, dtype=str, keep_default_na=True)

    logging.info(f"Reading transactions file: {transactions_path}")
    transactions = pd.read_csv(transactions_path, dtype=str, keep_default_na=True)

    return contacts, transactions

def reconcile_campaign(
    contacts_path: Path,
    transactions_path: Path,
    output_dir: Optional[Path] = None,
    config: Optional[PipelineConfig] = None
) -> PipelineResult:
    """
    Reconcile a campaign and optionally write its output tables.

    Args:
        contacts_path: Path to contacts.csv
        transactions_path: Path to transactions.csv
        output_dir: Optional directory for the CSV outputs
        config: Pipeline options

    Returns:
        PipelineResult: Reconciliation, metrics and warnings
    """
    try:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s'
        )

        contacts, transactions = load_campaign(contacts_path, transactions_path)

        logging.info("Starting reconciliation...")
        result = ReconciliationPipeline(config).run(contacts, transactions)

        for line in result.metrics.report_lines():
            logging.info(line)

        if result.warnings:
            logging.info(f"{len(result.warnings)} data quality warnings raised")

        if output_dir:
            output_dir.mkdir(parents=True, exist_ok=True)
            logging.info(f"Saving results to: {output_dir}")
            result.metrics.to_frame().to_csv(output_dir / 'kpi_summary.csv', index=False)
            result.unmatched.to_csv(output_dir / 'unmatched_transactions.csv', index=False)
            result.reconciliation.to_frame().to_csv(
                output_dir / 'reconciled_records.csv', index=False
            )
            CampaignAnalyzer.match_type_breakdown(result.reconciliation).to_csv(
                output_dir / 'match_types_by_state.csv', index=False
            )
            if result.suggestions is not None:
                result.suggestions.to_csv(output_dir / 'fuzzy_suggestions.csv', index=False)

        return result

    except Exception as e:
        logging.error(f"An error occurred: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    # Example usage
    results = reconcile_campaign(
        contacts_path=Path('data/contacts.csv'),
        transactions_path=Path('data/transactions.csv'),
        output_dir=Path('data/output'),
        config=PipelineConfig(
            enable_fuzzy=True,
            fuzzy_threshold=5,
            cost_per_contact=3,
            suggest_candidates=True
        )
    )
