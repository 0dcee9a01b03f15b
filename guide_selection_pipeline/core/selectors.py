#!/usr/bin/env python3

"""
Guide selection strategies.

Tiling greedily picks the best-scoring guides whose footprints stay clear of
every earlier pick's exclusion zone. The proximal strategies (interference
and activation) take the top-N guides inside a fixed window around the TSS.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from intervaltree import IntervalTree

from .config import PipelineConfig
from .data_structures import Candidate, ExclusionZone, SelectionMode, SelectionResult
from .exceptions import NoCandidatesForTarget


def rank_by_score(candidates: List[Candidate]) -> List[Candidate]:
    """Score descending; equal scores keep their input order."""
    return sorted(candidates, key=lambda c: (-c.score, c.input_index))


class GuideSelector:
    """Base class for the selection strategies."""

    mode: SelectionMode

    def select(self, target_id: str, candidates: List[Candidate]) -> SelectionResult:
        raise NotImplementedError


class TilingSelector(GuideSelector):
    """Greedy-by-score selection of guides with non-overlapping exclusion zones."""

    mode = SelectionMode.TILING

    def __init__(self, exclusion_radius: int = 50, min_score: Optional[float] = None):
        if exclusion_radius < 0:
            raise ValueError(f"Exclusion radius must be >= 0, got {exclusion_radius}")
        self.exclusion_radius = exclusion_radius
        self.min_score = min_score

    def select(self, target_id: str, candidates: List[Candidate]) -> SelectionResult:
        result = SelectionResult(target_id=target_id, mode=self.mode,
                                 eligible_count=len(candidates))

        # Zone state lives only for this call
        zones: Dict[str, IntervalTree] = defaultdict(IntervalTree)

        for candidate in rank_by_score(candidates):
            tree = zones[candidate.chromosome]
            if tree.overlaps(candidate.abs_start, candidate.abs_end):
                continue

            zone = ExclusionZone.around(candidate, self.exclusion_radius)
            tree.addi(zone.start, zone.end, candidate.id)
            result.candidates.append(candidate)

            if self.min_score is not None and candidate.score < self.min_score:
                logging.warning(f"Selected guide with low score: {candidate.id} "
                                f"(score: {candidate.score:g}, threshold: {self.min_score:g})")

        logging.debug(f"{target_id}: tiling kept {result.selected_count}/{len(candidates)} guides "
                      f"(radius {self.exclusion_radius} bp)")
        return result


class ProximalSelector(GuideSelector):
    """Top-N guides whose TSS offset lies inside an inclusive window."""

    def __init__(self, window: Tuple[int, int], target_count: int = 3):
        if window[0] > window[1]:
            raise ValueError(f"Invalid window: {window[0]}..{window[1]}")
        if target_count < 1:
            raise ValueError(f"Target count must be >= 1, got {target_count}")
        self.window = window
        self.target_count = target_count

    def in_window(self, candidate: Candidate) -> bool:
        return self.window[0] <= candidate.tss_relative_offset <= self.window[1]

    def select(self, target_id: str, candidates: List[Candidate]) -> SelectionResult:
        eligible = [c for c in candidates if self.in_window(c)]
        result = SelectionResult(
            target_id=target_id,
            mode=self.mode,
            candidates=rank_by_score(eligible)[:self.target_count],
            eligible_count=len(eligible),
            requested=self.target_count
        )

        if result.is_short:
            logging.info(f"{target_id}: only {result.selected_count} {self.mode.value} guides "
                         f"in window [{self.window[0]}, {self.window[1]}] "
                         f"(requested {self.target_count})")
        return result


class InterferenceSelector(ProximalSelector):
    mode = SelectionMode.INTERFERENCE


class ActivationSelector(ProximalSelector):
    mode = SelectionMode.ACTIVATION


def build_selectors(config: PipelineConfig) -> List[GuideSelector]:
    """Instantiate one selector per enabled mode, in canonical mode order."""
    selectors: List[GuideSelector] = []
    for mode in config.selection_modes:
        if mode is SelectionMode.TILING:
            selectors.append(TilingSelector(config.exclusion_radius, config.min_score))
        elif mode is SelectionMode.INTERFERENCE:
            selectors.append(InterferenceSelector(config.window_for(mode), config.target_count))
        elif mode is SelectionMode.ACTIVATION:
            selectors.append(ActivationSelector(config.window_for(mode), config.target_count))
    return selectors


@dataclass
class TargetSelection:
    """All strategy results for one target."""
    target_id: str
    candidate_count: int
    results: Dict[SelectionMode, SelectionResult] = field(default_factory=dict)

    def result_for(self, mode: SelectionMode) -> Optional[SelectionResult]:
        return self.results.get(mode)


def select_target(target_id: str, candidates: List[Candidate],
                  selectors: List[GuideSelector]) -> TargetSelection:
    """Run every selector over one target's filtered candidates."""
    if not candidates:
        raise NoCandidatesForTarget(target_id)

    selection = TargetSelection(target_id=target_id, candidate_count=len(candidates))
    for selector in selectors:
        selection.results[selector.mode] = selector.select(target_id, candidates)
    return selection
