#!/usr/bin/env python3

"""
Candidate filters: static quality flags, banned motifs and variant overlap.

Every filter is a pass/fail predicate; none of them modifies a candidate.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from intervaltree import IntervalTree

from .data_structures import Candidate


class QualityFilter:
    """Reject guides FlashFry flagged as dangerous."""

    reason = "quality_flags"

    def passes(self, candidate: Candidate) -> bool:
        return (candidate.gc_flag == "NONE" and
                candidate.polyT_flag == "NONE" and
                candidate.in_genome_confirmed)


class MotifFilter:
    """Reject guides whose sequence contains a banned literal motif."""

    reason = "banned_motif"

    def __init__(self, motifs: Iterable[str]):
        self.motifs = [m.upper() for m in motifs if m]

    def first_hit(self, sequence: str) -> Optional[str]:
        """Return the first motif found in the sequence, if any."""
        sequence = sequence.upper()
        for motif in self.motifs:
            if motif in sequence:
                return motif
        return None

    def passes(self, candidate: Candidate) -> bool:
        return self.first_hit(candidate.target_sequence) is None


class VariantFilter:
    """Reject guides overlapping a known variant interval."""

    reason = "variant_overlap"

    def __init__(self, trees: Dict[str, IntervalTree]):
        self.trees = trees

    def passes(self, candidate: Candidate) -> bool:
        tree = self.trees.get(candidate.chromosome)
        if tree is None:
            return True
        return not tree.overlaps(candidate.abs_start, candidate.abs_end)


class CandidateFilter:
    """Apply the configured filters in order and keep rejection counts."""

    def __init__(self, motifs: Optional[Iterable[str]] = None,
                 variant_trees: Optional[Dict[str, IntervalTree]] = None):
        self.filters = [QualityFilter()]
        if motifs:
            self.filters.append(MotifFilter(motifs))
        if variant_trees:
            self.filters.append(VariantFilter(variant_trees))
        self.rejections: Counter = Counter()

    def rejection_reason(self, candidate: Candidate) -> Optional[str]:
        """Name of the first filter the candidate fails, or None if it passes."""
        for candidate_filter in self.filters:
            if not candidate_filter.passes(candidate):
                return candidate_filter.reason
        return None

    def apply(self, candidates: List[Candidate]) -> List[Candidate]:
        """Return the candidates that pass every filter, preserving order."""
        passed = []
        for candidate in candidates:
            reason = self.rejection_reason(candidate)
            if reason is None:
                passed.append(candidate)
            else:
                self.rejections[reason] += 1

        for reason, count in sorted(self.rejections.items()):
            logging.info(f"Rejected {count} guides ({reason})")
        logging.info(f"{len(passed)}/{len(candidates)} guides passed filtering")
        return passed
