#!/usr/bin/env python3

"""
Merge per-strategy selections into one flag-annotated guide set per target.
"""

from typing import Dict, Iterable, List

from .data_structures import MergedGuide, SelectionResult


def merge_selections(results: Iterable[SelectionResult]) -> List[MergedGuide]:
    """
    Union the guides chosen by each strategy for a single target.

    A guide chosen by several strategies appears once, with one flag set per
    strategy that chose it. The result is sorted by genomic position so that
    its order never depends on which strategy ran first.
    """
    merged: Dict[str, MergedGuide] = {}

    for result in results:
        for candidate in result.candidates:
            guide = merged.get(candidate.id)
            if guide is None:
                guide = MergedGuide(candidate=candidate)
                merged[candidate.id] = guide
            guide.mark(result.mode)

    return sorted(merged.values(), key=lambda g: g.sort_key)
