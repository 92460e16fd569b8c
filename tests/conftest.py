import pandas as pd
import pytest

from campaign_matcher.config.models import (
    CONTACT_COLUMNS,
    TRANSACTION_COLUMNS,
    PipelineConfig
)
from campaign_matcher.core.preprocessor import RecordNormalizer


CONTACT_ROWS = [
    (1, 'Janie', 'Welch', 35, '12 High St', 'Carlton', 3053, 'VIC'),
    (2, 'Tom', 'Baker', 62, '4 Low Rd', 'Fitzroy', 3065, 'VIC'),
    (3, 'Ann', 'Lee', 45, '9 Park Ave', 'Newtown', 2042, 'NSW'),
]

TRANSACTION_ROWS = [
    (2, 'Tom', 'Baker', 62, '4 Low Rd', 'Fitzroy', 3065, 'VIC', 40.0),
    (99, 'J', 'Welch', 35, '12 High St', 'Carlton', 3053, 'VIC', 50.0),
    (None, 'Zed', 'Zulu', 20, '1 Nowhere Pl', 'Perth', 6000, 'WA', 20.0),
]


def contact_frame(rows):
    return pd.DataFrame(rows, columns=list(CONTACT_COLUMNS))


def transaction_frame(rows):
    return pd.DataFrame(rows, columns=list(TRANSACTION_COLUMNS))


@pytest.fixture
def make_contacts():
    return contact_frame


@pytest.fixture
def make_transactions():
    return transaction_frame


@pytest.fixture
def contacts():
    return contact_frame(CONTACT_ROWS)


@pytest.fixture
def transactions():
    return transaction_frame(TRANSACTION_ROWS)


@pytest.fixture
def normalized(contacts, transactions):
    normalizer = RecordNormalizer(PipelineConfig())
    return (
        normalizer.normalize_contacts(contacts),
        normalizer.normalize_transactions(transactions),
    )
