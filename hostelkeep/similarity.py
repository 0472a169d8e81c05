"""Duplicate scoring and candidate matching for issues."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterable

from hostelkeep.algorithms import day_difference, location_similarity, text_similarity, time_proximity
from hostelkeep.config import SimilarityConfig
from hostelkeep.models import CLOSED_STATUSES, Issue, SimilarityBreakdown, SimilarityResult, SimilarityScore

logger = logging.getLogger(__name__)


def _percent(value: float) -> int:
    return math.floor(value * 100 + 0.5)


def score_issues(a: Issue, b: Issue, cfg: SimilarityConfig | None = None) -> SimilarityScore:
    """Weighted similarity of two issues plus the reasons a human would care about.

    Every factor is symmetric in its arguments, so ``score_issues(a, b)`` and
    ``score_issues(b, a)`` agree on value and reasons.
    """
    cfg = cfg or SimilarityConfig()
    reasons: list[str] = []

    title = text_similarity(a.title, b.title)
    if title > cfg.reason_title_min:
        reasons.append(f"Similar titles ({_percent(title)}% match)")

    description = text_similarity(a.description, b.description)
    if description > cfg.reason_description_min:
        reasons.append(f"Similar descriptions ({_percent(description)}% match)")

    category = 1.0 if a.category == b.category else 0.0
    if category:
        reasons.append(f"Same category: {a.category.value}")

    location = location_similarity(
        [
            (a.location.hostel, b.location.hostel, cfg.location_hostel),
            (a.location.block, b.location.block, cfg.location_block),
            (a.location.room, b.location.room, cfg.location_room),
        ]
    )
    if location > cfg.reason_location_min:
        reasons.append(f"Similar location ({_percent(location)}% match)")

    days_apart = day_difference(a.created_at, b.created_at)
    proximity = time_proximity(
        days_apart,
        [(tier.max_days, tier.score) for tier in cfg.time_tiers],
        cfg.time_floor,
    )
    if proximity > cfg.reason_time_min:
        reasons.append(f"Reported within {math.ceil(days_apart)} day(s)")

    total = (
        cfg.weight_title * title
        + cfg.weight_description * description
        + cfg.weight_category * category
        + cfg.weight_location * location
        + cfg.weight_time * proximity
    )
    total = max(0.0, min(1.0, total))

    breakdown = SimilarityBreakdown(
        title=title,
        description=description,
        category=category,
        location=location,
        time=proximity,
        total=total,
    )
    return SimilarityScore(value=total, reasons=reasons, breakdown=breakdown)


def find_similar(
    target: Issue,
    pool: Iterable[Issue],
    cfg: SimilarityConfig | None = None,
) -> list[SimilarityResult]:
    """Return pool members scoring at or above the report threshold, best first.

    Ties keep the pool's relative order.
    """
    cfg = cfg or SimilarityConfig()
    if target.merged_into:
        return []

    matches: list[SimilarityResult] = []
    for candidate in pool:
        if candidate.id == target.id:
            continue
        if candidate.merged_into:
            continue
        if candidate.status in CLOSED_STATUSES:
            continue

        result = score_issues(target, candidate, cfg)
        if result.value >= cfg.report_threshold:
            matches.append(SimilarityResult(issue=candidate, score=result.value, match_reasons=result.reasons))

    return sorted(matches, key=lambda match: -match.score)


def find_duplicate_groups(
    issues: list[Issue],
    cfg: SimilarityConfig | None = None,
) -> dict[str, list[SimilarityResult]]:
    """Map each active issue id to its matches among the other active issues."""
    cfg = cfg or SimilarityConfig()
    start = time.perf_counter()
    active = [issue for issue in issues if not issue.merged_into and issue.status not in CLOSED_STATUSES]

    groups: dict[str, list[SimilarityResult]] = {}
    total = len(active)
    for counter, issue in enumerate(active, start=1):
        similar = find_similar(issue, active, cfg)
        if similar:
            groups[issue.id] = similar
        if counter % 100 == 0 or counter == total:
            logger.debug(
                "Duplicate scan progress: %s/%s issues, groups=%s, elapsed=%.2fs",
                counter,
                total,
                len(groups),
                time.perf_counter() - start,
            )

    logger.info("Duplicate scan complete: active=%s groups=%s", total, len(groups))
    return groups
