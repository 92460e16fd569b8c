"""Fuzzy record matching of unmatched transactions against contacts."""

from typing import Dict, List, Optional, Sequence, Tuple
import math
import pandas as pd
import numpy as np
from concurrent.futures import ThreadPoolExecutor
import logging
import time
from collections import defaultdict
import xxhash

from campaign_matcher.core.validator import score, PairScore
from campaign_matcher.core.errors import DataQualityWarning
from campaign_matcher.config.models import (
    PipelineConfig,
    MatchResult,
    MatchType,
    FuzzyCandidate,
    SUGGESTION_COLUMNS
)

logger = logging.getLogger(__name__)

def unmatched_result(index: int, original_urn: Optional[int]) -> MatchResult:
    """Result for a transaction that stays unmatched."""
    return MatchResult(
        transaction_index=index,
        resolved_urn=None,
        original_urn=original_urn,
        match_type=MatchType.UNMATCHED
    )

class FuzzyMatcher:
    """
    Resolves transactions left over by identifier matching.

    Every unmatched transaction is scored against every contact (or against
    the contacts sharing its block value when ``block_on`` is configured).
    The candidate with the smallest combined distance is kept; ties go to
    the contact with the lowest ``urn``. A candidate is accepted only when
    its combined distance is strictly below ``fuzzy_threshold``.
    """

    def __init__(self, config: PipelineConfig):
        """
        Initialize the fuzzy matcher.

        Args:
            config: Pipeline configuration supplying threshold, blocking
                column and worker count
        """
        self.config = config
        self.warnings: List[DataQualityWarning] = []

        self._contact_urns: List[int] = []
        self._contact_keys: List[Tuple[str, str]] = []
        self._block_index: Dict[bytes, List[int]] = {}

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(DataQualityWarning(message))

    @staticmethod
    def _block_key(value) -> Optional[bytes]:
        if pd.isna(value):
            return None
        return xxhash.xxh64(str(value).strip().lower().encode('utf-8')).digest()

    def _build_indexes(self, contacts: pd.DataFrame) -> None:
        """Order contacts by identifier and index them by block value."""
        ordered = contacts.sort_values('urn', kind='mergesort')
        self._contact_urns = [int(urn) for urn in ordered['urn']]
        self._contact_keys = list(zip(ordered['full_name'], ordered['full_address']))

        block_index = defaultdict(list)
        if self.config.block_on:
            for position, value in enumerate(ordered[self.config.block_on]):
                key = self._block_key(value)
                if key is not None:
                    block_index[key].append(position)
        self._block_index = dict(block_index)

    def _find_candidates(self, block_value) -> Sequence[int]:
        """Positions of contacts worth scoring, in ascending identifier order."""
        if not self.config.block_on:
            return range(len(self._contact_urns))

        key = self._block_key(block_value)
        if key is None:
            return range(len(self._contact_urns))
        return self._block_index.get(key, [])

    def best_candidate(
        self,
        transaction_keys: Tuple[str, str],
        candidates: Sequence[int]
    ) -> Tuple[Optional[int], Optional[PairScore], int]:
        """
        Select the closest contact for one transaction.

        Args:
            transaction_keys: ``(full_name, full_address)`` of the transaction
            candidates: Contact positions to score, in identifier order

        Returns:
            Tuple: Position of the best contact (or None), its score, and the
            number of contacts sharing the minimum distance
        """
        best_position = None
        best_score = None
        ties = 0

        for position in candidates:
            pair = score(transaction_keys, self._contact_keys[position])
            if math.isinf(pair.combined_distance):
                continue
            if best_score is None or pair.combined_distance < best_score.combined_distance:
                best_position = position
                best_score = pair
                ties = 1
            elif pair.combined_distance == best_score.combined_distance:
                ties += 1

        return best_position, best_score, ties

    def match(
        self,
        contacts: pd.DataFrame,
        unmatched: pd.DataFrame,
        accept: bool = True
    ) -> Tuple[List[MatchResult], List[FuzzyCandidate]]:
        """
        Score unmatched transactions and resolve those close enough.

        Args:
            contacts: Normalized contacts
            unmatched: Normalized transactions that failed identifier matching
            accept: When False, candidates are scored for suggestions only and
                every transaction stays unmatched

        Returns:
            Tuple: One MatchResult per unmatched transaction, in input order,
            and the best candidate found for each transaction that had one
        """
        start_time = time.time()
        self._build_indexes(contacts)

        rows = self._prepare_rows(unmatched)
        if self.config.worker_processes > 1 and len(rows) > 1:
            chunks = np.array_split(np.arange(len(rows)), self.config.worker_processes)
            with ThreadPoolExecutor(max_workers=self.config.worker_processes) as executor:
                chunk_results = executor.map(
                    lambda chunk: self._process_chunk([rows[i] for i in chunk], accept),
                    chunks
                )
                scored = [item for chunk in chunk_results for item in chunk]
        else:
            scored = self._process_chunk(rows, accept)

        results = [result for result, _, _ in scored]
        candidates = [candidate for _, candidate, _ in scored if candidate is not None]

        tied = [(result, ties) for result, _, ties in scored if ties > 1]
        for result, ties in tied:
            self._warn(
                f"Transaction {result.transaction_index} has {ties} equally close "
                f"contacts; chose the lowest identifier"
            )

        accepted = sum(1 for result in results if result.is_matched)
        logger.info(
            f"Fuzzy matching accepted {accepted} of {len(results)} transactions "
            f"in {time.time() - start_time:.2f} seconds"
        )
        return results, candidates

    def _prepare_rows(self, unmatched: pd.DataFrame) -> List[Tuple]:
        """Extract the fields scoring needs, detached from the frame."""
        block_values = (
            unmatched[self.config.block_on].tolist()
            if self.config.block_on else [None] * len(unmatched)
        )
        return [
            (int(index), urn, (name, address), block_value)
            for (index, urn, name, address), block_value in zip(
                unmatched[['urn', 'full_name', 'full_address']].itertuples(),
                block_values
            )
        ]

    def _process_chunk(
        self,
        rows: List[Tuple],
        accept: bool
    ) -> List[Tuple[MatchResult, Optional[FuzzyCandidate], int]]:
        """
        Process a chunk of unmatched transactions.

        Args:
            rows: ``(index, claimed urn, keys, block value)`` tuples
            accept: Whether close candidates become links

        Returns:
            List: Result, candidate and tie count for each row
        """
        processed = []

        for index, claimed_urn, keys, block_value in rows:
            original_urn = None if pd.isna(claimed_urn) else int(claimed_urn)
            position, pair, ties = self.best_candidate(keys, self._find_candidates(block_value))

            if position is None:
                processed.append((unmatched_result(index, original_urn), None, 0))
                continue

            candidate = FuzzyCandidate(
                transaction_index=index,
                original_identifier=original_urn,
                candidate_identifier=self._contact_urns[position],
                combined_distance=pair.combined_distance
            )

            if accept and pair.combined_distance < self.config.fuzzy_threshold:
                result = MatchResult(
                    transaction_index=index,
                    resolved_urn=self._contact_urns[position],
                    original_urn=original_urn,
                    match_type=MatchType.FUZZY,
                    combined_distance=pair.combined_distance,
                    name_distance=pair.name_distance,
                    address_distance=pair.address_distance,
                    tied_candidates=ties
                )
            else:
                result = unmatched_result(index, original_urn)
                ties = 0

            processed.append((result, candidate, ties))

        return processed

def suggestions_frame(candidates: List[FuzzyCandidate]) -> pd.DataFrame:
    """Tabulate fuzzy candidates for manual review."""
    frame = pd.DataFrame(
        [
            (c.original_identifier, c.candidate_identifier, c.combined_distance)
            for c in candidates
        ],
        columns=list(SUGGESTION_COLUMNS)
    )
    frame['original_identifier'] = frame['original_identifier'].astype('Int64')
    frame['candidate_identifier'] = frame['candidate_identifier'].astype('Int64')
    frame['combined_distance'] = frame['combined_distance'].astype('float64')
    return frame
