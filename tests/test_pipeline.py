import pandas as pd
import pytest

from campaign_matcher import (
    DataQualityWarning,
    DegenerateInputError,
    MatchType,
    PipelineConfig,
    RecordStatus,
    ReconciliationPipeline,
    SchemaError
)


def test_single_fuzzy_gift(make_contacts, make_transactions):
    contacts = make_contacts([
        (1, 'Janie', 'Welch', 35, '12 High St', 'Carlton', 3053, 'VIC'),
    ])
    transactions = make_transactions([
        (2, 'J', 'Welch', 35, '12 High St', 'Carlton', 3053, 'VIC', 50),
    ])
    result = ReconciliationPipeline(PipelineConfig(enable_fuzzy=True)).run(contacts, transactions)

    assert [r.match_type for r in result.match_results] == [MatchType.FUZZY]
    assert result.reconciliation.count(RecordStatus.FUZZY) == 1
    assert result.metrics.num_gifts == 1
    assert result.metrics.total_income == 50.0
    assert result.unmatched.empty


def _campaign(num_contacts=270, exact=25, unmatched=5):
    contacts = pd.DataFrame({
        'urn': range(1, num_contacts + 1),
        'first': [f'First{i}' for i in range(num_contacts)],
        'last': [f'Last{i}' for i in range(num_contacts)],
        'age': [20 + i % 60 for i in range(num_contacts)],
        'addr_line': [f'{i} Main St' for i in range(num_contacts)],
        'addr_suburb': 'Town',
        'addr_postcode': [3000 + i for i in range(num_contacts)],
        'addr_state': 'VIC',
    })
    amounts = [50.0] * (exact - 1) + [120.0]
    transactions = contacts.iloc[:exact].copy()
    transactions['amount'] = amounts
    strangers = pd.DataFrame({
        'urn': range(10001, 10001 + unmatched),
        'first': 'Nobody',
        'last': [f'Stranger{i}' for i in range(unmatched)],
        'age': 50,
        'addr_line': 'PO Box 1',
        'addr_suburb': 'Elsewhere',
        'addr_postcode': 6000,
        'addr_state': 'WA',
        'amount': 10.0,
    })
    return contacts, pd.concat([transactions, strangers], ignore_index=True)


def test_reference_campaign_metrics():
    contacts, transactions = _campaign()
    metrics = ReconciliationPipeline().run(contacts, transactions).metrics

    assert metrics.num_gifts == 25
    assert metrics.total_income == 1320.0
    assert metrics.response_rate == pytest.approx(25 / 270)
    assert round(metrics.response_rate, 4) == 0.0926
    assert metrics.cost == 810.0
    assert metrics.net_income == 510.0


@pytest.mark.parametrize('config', [
    PipelineConfig(),
    PipelineConfig(enable_fuzzy=True),
    PipelineConfig(enable_fuzzy=True, fuzzy_threshold=1000),
])
def test_gifts_and_unmatched_conserve_transactions(contacts, transactions, config):
    result = ReconciliationPipeline(config).run(contacts, transactions)
    assert result.metrics.num_gifts + len(result.unmatched) == len(transactions)
    assert 0 <= result.metrics.response_rate <= 1
    assert result.metrics.total_income >= 0


def test_exact_matches_never_reach_fuzzy_stage(make_contacts, make_transactions):
    contacts = make_contacts([
        (1, 'Janie', 'Welch', 35, '12 High St', 'Carlton', 3053, 'VIC'),
        (2, 'Tom', 'Baker', 62, '4 Low Rd', 'Fitzroy', 3065, 'VIC'),
    ])
    transactions = make_transactions([
        (2, 'Janie', 'Welch', 35, '12 High St', 'Carlton', 3053, 'VIC', 10),
    ])
    config = PipelineConfig(enable_fuzzy=True, fuzzy_threshold=1000, suggest_candidates=True)
    result = ReconciliationPipeline(config).run(contacts, transactions)

    assert result.match_results[0].match_type is MatchType.EXACT
    assert result.match_results[0].resolved_urn == 2
    assert result.suggestions.empty
    assert [r.match_type for r in result.reconciliation.records] == [
        RecordStatus.NO_MATCH, RecordStatus.EXACT
    ]


def test_fuzzy_is_off_by_default(contacts, transactions):
    result = ReconciliationPipeline().run(contacts, transactions)

    assert result.reconciliation.count(RecordStatus.FUZZY) == 0
    assert result.unmatched.index.tolist() == [1, 2]
    assert result.suggestions is None


def test_suggestions_without_accepting(contacts, transactions):
    config = PipelineConfig(suggest_candidates=True)
    result = ReconciliationPipeline(config).run(contacts, transactions)

    assert result.reconciliation.count(RecordStatus.FUZZY) == 0
    assert result.suggestions.loc[0, 'candidate_identifier'] == 1
    assert result.suggestions.loc[0, 'combined_distance'] == 2.0


def test_missing_amount_counts_as_gift_but_no_match(make_contacts, make_transactions):
    contacts = make_contacts([
        (1, 'A', 'B', 30, '1 St', 'Town', 3000, 'VIC'),
        (2, 'C', 'D', 30, '2 St', 'Town', 3000, 'VIC'),
    ])
    transactions = make_transactions([
        (1, 'A', 'B', 30, '1 St', 'Town', 3000, 'VIC', None),
        (2, 'C', 'D', 30, '2 St', 'Town', 3000, 'VIC', 30),
    ])
    result = ReconciliationPipeline().run(contacts, transactions)

    assert [r.match_type for r in result.reconciliation.records] == [
        RecordStatus.NO_MATCH, RecordStatus.EXACT
    ]
    assert result.metrics.num_gifts == 2
    assert result.metrics.total_income == 30.0


def test_warnings_are_accumulated(contacts, transactions):
    result = ReconciliationPipeline().run(contacts, transactions)
    assert result.warnings
    assert all(isinstance(w, DataQualityWarning) for w in result.warnings)


def test_runs_are_idempotent(contacts, transactions):
    config = PipelineConfig(enable_fuzzy=True)
    first = ReconciliationPipeline(config).run(contacts, transactions)
    second = ReconciliationPipeline(config).run(contacts, transactions)

    assert first.metrics.to_frame().to_csv(index=False) == second.metrics.to_frame().to_csv(index=False)
    assert first.match_results == second.match_results


def test_schema_errors_abort_before_matching(contacts, transactions):
    with pytest.raises(SchemaError):
        ReconciliationPipeline().run(contacts, transactions.drop(columns=['amount']))


def test_no_contacts_is_degenerate(contacts, transactions):
    with pytest.raises(DegenerateInputError):
        ReconciliationPipeline().run(contacts.iloc[0:0], transactions)


def test_no_transactions_is_degenerate(contacts, transactions):
    with pytest.raises(DegenerateInputError):
        ReconciliationPipeline().run(contacts, transactions.iloc[0:0])


def test_csv_inputs_read_as_text(tmp_path, contacts, transactions):
    contacts.to_csv(tmp_path / 'contacts.csv', index=False)
    transactions.to_csv(tmp_path / 'transactions.csv', index=False)

    result = ReconciliationPipeline(PipelineConfig(enable_fuzzy=True)).run(
        pd.read_csv(tmp_path / 'contacts.csv', dtype=str),
        pd.read_csv(tmp_path / 'transactions.csv', dtype=str),
    )
    assert result.metrics.num_gifts == 2
    assert result.metrics.total_income == 90.0
