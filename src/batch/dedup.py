# src/batch/dedup.py - v2
"""Duplicate detection over one scanned batch.

Two passes:
  1. EXACT: items sharing a content digest → score 1.0, disposition "remove"
  2. NEAR: pairwise perceptual-hash similarity over the remaining items;
     a match joins the leader's group and is never examined as a leader.
     Score ≥ 0.9 → "keep", otherwise "review".

The near pass is O(n²) in the number of non-exact items. For very large
libraries set ``bucket_bytes`` so only items of similar file size are
compared.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from iconnormalizer.core.hashing import hash_similarity
from iconnormalizer.core.models import Disposition, DuplicateGroup, Item

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.8
KEEP_THRESHOLD = 0.9

SimilarityFn = Callable[[Item, Item], float]


def perceptual_similarity(a: Item, b: Item) -> float:
    """Similarity of two items from their rendered perceptual hashes."""
    return hash_similarity(a.perceptual_hash, b.perceptual_hash)


def near_disposition(score: float) -> Disposition:
    """Disposition for a near-pass group; exact groups are always "remove"."""
    if score >= KEEP_THRESHOLD:
        return "keep"
    return "review"


def _name_key(item: Item) -> tuple[str, str]:
    return (item.display_name, str(item.path))


class DuplicateDetector:
    """Partition a batch of items into duplicate groups.

    Args:
        similarity_threshold: Minimum near-pass score to group two items.
        bucket_bytes: If > 0, near-pass comparisons are limited to items
            whose ``byte_size // bucket_bytes`` is equal.
        similarity: Pairwise score function (defaults to pHash similarity).
    """

    def __init__(
        self,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        bucket_bytes: int = 0,
        similarity: SimilarityFn = perceptual_similarity,
    ) -> None:
        self._threshold = similarity_threshold
        self._bucket_bytes = bucket_bytes
        self._similarity = similarity

    def find_duplicates(self, items: list[Item]) -> list[DuplicateGroup]:
        """Return exact groups followed by near-duplicate groups."""
        exact_groups = self._find_exact(items)
        grouped = {i for g in exact_groups for i in g.item_ids}
        remaining = [item for item in items if item.id not in grouped]

        near_groups: list[DuplicateGroup] = []
        for bucket in self._buckets(remaining):
            near_groups.extend(self._find_near(bucket))

        logger.info(
            "Dedup complete: %d exact groups, %d near groups over %d items",
            len(exact_groups), len(near_groups), len(items),
        )
        return exact_groups + near_groups

    def _find_exact(self, items: list[Item]) -> list[DuplicateGroup]:
        by_digest: dict[str, list[Item]] = defaultdict(list)
        for item in items:
            by_digest[item.content_digest].append(item)

        groups: list[DuplicateGroup] = []
        for same in by_digest.values():
            if len(same) < 2:
                continue
            ordered = sorted(same, key=_name_key)
            groups.append(DuplicateGroup(
                primary=ordered[0],
                members=ordered[1:],
                similarity_score=1.0,
                disposition="remove",
            ))
            logger.debug(
                "Exact group: %s + %d members", ordered[0].display_name, len(ordered) - 1,
            )
        return groups

    def _find_near(self, items: list[Item]) -> list[DuplicateGroup]:
        groups: list[DuplicateGroup] = []
        followers: set[str] = set()

        for i, leader in enumerate(items):
            if leader.id in followers:
                continue
            members: list[Item] = []
            scores: list[float] = []
            for candidate in items[i + 1:]:
                if candidate.id in followers:
                    continue
                if candidate.content_digest == leader.content_digest:
                    continue
                score = self._similarity(leader, candidate)
                if score >= self._threshold:
                    members.append(candidate)
                    scores.append(score)
                    followers.add(candidate.id)

            if members:
                score = min(scores)
                groups.append(DuplicateGroup(
                    primary=leader,
                    members=members,
                    similarity_score=score,
                    disposition=near_disposition(score),
                ))
                followers.add(leader.id)
                logger.debug(
                    "Near group: %s + %d members (score %.3f)",
                    leader.display_name, len(members), score,
                )
        return groups

    def _buckets(self, items: list[Item]) -> list[list[Item]]:
        if self._bucket_bytes <= 0:
            return [items] if items else []
        buckets: dict[int, list[Item]] = defaultdict(list)
        for item in items:
            buckets[item.byte_size // self._bucket_bytes].append(item)
        return list(buckets.values())
