"""Edit-distance scoring between normalized record keys."""

import math
from typing import NamedTuple, Tuple
from functools import lru_cache
import Levenshtein


class PairScore(NamedTuple):
    """Distances between one transaction and one contact."""
    name_distance: float
    address_distance: float
    combined_distance: float


NO_EVIDENCE = PairScore(math.inf, math.inf, math.inf)


@lru_cache(maxsize=10000)
def key_distance(key1: str, key2: str) -> float:
    """
    Levenshtein distance between two normalized keys.

    An empty key against a non-empty one costs the length of the other key.
    Two empty keys carry no evidence and are infinitely far apart.

    Args:
        key1: First normalized key
        key2: Second normalized key

    Returns:
        float: Edit distance, or ``inf`` when both keys are empty
    """
    if not key1 and not key2:
        return math.inf
    return float(Levenshtein.distance(key1, key2))


def score(
    transaction_keys: Tuple[str, str],
    contact_keys: Tuple[str, str]
) -> PairScore:
    """
    Score a (transaction, contact) pair.

    A side whose name and address keys are both empty cannot be compared,
    and the pair scores ``inf`` on every distance.

    Args:
        transaction_keys: ``(full_name, full_address)`` of the transaction
        contact_keys: ``(full_name, full_address)`` of the contact

    Returns:
        PairScore: Name, address and unweighted mean distance
    """
    if not any(transaction_keys) or not any(contact_keys):
        return NO_EVIDENCE

    name_distance = key_distance(transaction_keys[0], contact_keys[0])
    address_distance = key_distance(transaction_keys[1], contact_keys[1])
    return PairScore(
        name_distance,
        address_distance,
        (name_distance + address_distance) / 2
    )
