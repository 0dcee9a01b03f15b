#!/usr/bin/env python3

"""
Unit tests for the tiling and TSS-proximal selection strategies.
"""

import os
import random
import sys
import unittest

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from guide_selection_pipeline.core.config import PipelineConfig
from guide_selection_pipeline.core.data_structures import Candidate, ExclusionZone, SelectionMode
from guide_selection_pipeline.core.exceptions import NoCandidatesForTarget
from guide_selection_pipeline.core.selectors import (
    ActivationSelector, InterferenceSelector, TilingSelector,
    build_selectors, rank_by_score, select_target
)


def make_candidate(start, end, score, offset=0, chromosome="chr1", index=0):
    return Candidate(
        target_id="GENE1",
        chromosome=chromosome,
        abs_start=start,
        abs_end=end,
        strand="+",
        orientation="FWD",
        score=score,
        tss_relative_offset=offset,
        input_index=index
    )


class TestRanking(unittest.TestCase):

    def test_ties_keep_input_order(self):
        candidates = [
            make_candidate(100, 120, 50.0, index=1),
            make_candidate(200, 220, 70.0, index=2),
            make_candidate(300, 320, 70.0, index=3),
        ]
        self.assertEqual([c.input_index for c in rank_by_score(candidates)], [2, 3, 1])


class TestTilingSelector(unittest.TestCase):
    """Test greedy exclusion-zone tiling."""

    def test_well_spaced_guides_all_selected(self):
        candidates = [
            make_candidate(1000, 1020, 90, index=1),
            make_candidate(1200, 1220, 80, index=2),
            make_candidate(1400, 1420, 70, index=3),
        ]
        result = TilingSelector(exclusion_radius=50).select("GENE1", candidates)

        self.assertEqual(result.mode, SelectionMode.TILING)
        self.assertEqual([c.abs_start for c in result.candidates], [1000, 1200, 1400])
        self.assertEqual(result.eligible_count, 3)

    def test_overlapping_footprints_with_zero_radius(self):
        candidates = [
            make_candidate(1000, 1020, 90, index=1),
            make_candidate(1010, 1030, 80, index=2),
        ]
        result = TilingSelector(exclusion_radius=0).select("GENE1", candidates)
        self.assertEqual([c.abs_start for c in result.candidates], [1000])

    def test_adjacent_footprints_with_zero_radius(self):
        candidates = [
            make_candidate(1000, 1020, 90, index=1),
            make_candidate(1020, 1040, 80, index=2),
        ]
        result = TilingSelector(exclusion_radius=0).select("GENE1", candidates)
        self.assertEqual(result.selected_count, 2)

    def test_radius_blocks_nearby_guide(self):
        candidates = [
            make_candidate(1000, 1020, 90, index=1),
            make_candidate(1060, 1080, 95, index=2),
        ]
        # Higher score wins; the other falls inside its 50 bp zone
        result = TilingSelector(exclusion_radius=50).select("GENE1", candidates)
        self.assertEqual([c.abs_start for c in result.candidates], [1060])

    def test_equal_scores_prefer_earlier_row(self):
        candidates = [
            make_candidate(1010, 1030, 80, index=1),
            make_candidate(1000, 1020, 80, index=2),
        ]
        result = TilingSelector(exclusion_radius=0).select("GENE1", candidates)
        self.assertEqual([c.input_index for c in result.candidates], [1])

    def test_zones_are_per_chromosome(self):
        candidates = [
            make_candidate(1000, 1020, 90, chromosome="chr1", index=1),
            make_candidate(1000, 1020, 80, chromosome="chr2", index=2),
        ]
        result = TilingSelector(exclusion_radius=50).select("GENE1", candidates)
        self.assertEqual(result.selected_count, 2)

    def test_state_does_not_leak_between_calls(self):
        selector = TilingSelector(exclusion_radius=50)
        first = selector.select("GENE1", [make_candidate(1000, 1020, 90)])
        second = selector.select("GENE2", [make_candidate(1000, 1020, 90)])
        self.assertEqual(first.selected_count, 1)
        self.assertEqual(second.selected_count, 1)

    def test_low_score_warning(self):
        selector = TilingSelector(exclusion_radius=50, min_score=60)
        with self.assertLogs(level='WARNING') as logs:
            result = selector.select("GENE1", [make_candidate(1000, 1020, 42)])
        self.assertEqual(result.selected_count, 1)
        self.assertTrue(any("low score" in line for line in logs.output))

    def test_empty_input(self):
        result = TilingSelector().select("GENE1", [])
        self.assertEqual(result.candidates, [])

    def test_negative_radius_rejected(self):
        with self.assertRaises(ValueError):
            TilingSelector(exclusion_radius=-5)

    def test_random_layouts_are_spaced_and_maximal(self):
        """Selected guides never share a zone and every rejected guide is blocked."""
        rng = random.Random(1234)
        radius = 30

        for trial in range(25):
            candidates = []
            for index in range(60):
                start = rng.randint(0, 2000)
                candidates.append(make_candidate(start, start + 20, rng.randint(0, 100),
                                                 chromosome=rng.choice(["chr1", "chr2"]),
                                                 index=index))

            result = TilingSelector(exclusion_radius=radius).select("GENE1", candidates)
            selected = result.candidates
            zones = [ExclusionZone.around(c, radius) for c in selected]

            with self.subTest(trial=trial):
                # The top-ranked candidate is always kept
                self.assertIs(selected[0], rank_by_score(candidates)[0])

                # Each pick stays clear of every earlier pick's zone
                for i, candidate in enumerate(selected):
                    for zone in zones[:i]:
                        self.assertFalse(zone.blocks(candidate))

                # Every rejected candidate sits in some selected zone
                chosen = {id(c) for c in selected}
                for candidate in candidates:
                    if id(candidate) not in chosen:
                        self.assertTrue(any(zone.blocks(candidate) for zone in zones))


class TestProximalSelectors(unittest.TestCase):
    """Test top-N selection inside TSS windows."""

    def setUp(self):
        offsets_and_scores = [
            (-500, 99), (-350, 60), (-200, 75), (-100, 80), (-50, 70),
            (0, 65), (100, 90), (300, 55), (301, 95), (500, 85),
        ]
        self.candidates = [
            make_candidate(10000 + offset, 10020 + offset, score, offset=offset, index=i)
            for i, (offset, score) in enumerate(offsets_and_scores, 1)
        ]

    def test_interference_top_three(self):
        selector = InterferenceSelector((-50, 300), target_count=3)
        result = selector.select("GENE1", self.candidates)

        self.assertEqual(result.mode, SelectionMode.INTERFERENCE)
        self.assertEqual([c.tss_relative_offset for c in result.candidates], [100, -50, 0])
        self.assertEqual(result.eligible_count, 4)
        self.assertFalse(result.is_short)

    def test_activation_top_three(self):
        selector = ActivationSelector((-400, -50), target_count=3)
        result = selector.select("GENE1", self.candidates)
        self.assertEqual([c.tss_relative_offset for c in result.candidates], [-100, -200, -50])

    def test_default_windows_are_disjoint(self):
        config = PipelineConfig()
        selected = {}
        for selector in build_selectors(config)[1:]:
            result = selector.select("GENE1", self.candidates)
            selected[selector.mode] = {c.tss_relative_offset for c in result.candidates}

        self.assertEqual(selected[SelectionMode.INTERFERENCE], {100, -50, 0})
        self.assertEqual(selected[SelectionMode.ACTIVATION], {-100, -200, -350})
        self.assertFalse(selected[SelectionMode.INTERFERENCE] & selected[SelectionMode.ACTIVATION])

    def test_window_bounds_inclusive(self):
        selector = InterferenceSelector((-50, 300), target_count=10)
        offsets = {c.tss_relative_offset for c in selector.select("GENE1", self.candidates).candidates}
        self.assertEqual(offsets, {-50, 0, 100, 300})

    def test_short_result(self):
        selector = ActivationSelector((-400, -51), target_count=6)
        with self.assertLogs(level='INFO'):
            result = selector.select("GENE1", self.candidates)
        self.assertEqual(result.selected_count, 3)
        self.assertTrue(result.is_short)

    def test_empty_window(self):
        selector = InterferenceSelector((1000, 2000), target_count=3)
        result = selector.select("GENE1", self.candidates)
        self.assertEqual(result.candidates, [])

    def test_invalid_parameters(self):
        with self.assertRaises(ValueError):
            InterferenceSelector((300, -50))
        with self.assertRaises(ValueError):
            ActivationSelector((-400, -50), target_count=0)


class TestSelectTarget(unittest.TestCase):
    """Test running all configured strategies for one target."""

    def test_build_selectors_follows_config(self):
        selectors = build_selectors(PipelineConfig(modes=["activation", "tiling"]))
        self.assertEqual([s.mode for s in selectors], [SelectionMode.TILING, SelectionMode.ACTIVATION])

    def test_select_target_runs_every_mode(self):
        candidates = [make_candidate(10000, 10020, 80, offset=-100)]
        selection = select_target("GENE1", candidates, build_selectors(PipelineConfig()))

        self.assertEqual(selection.candidate_count, 1)
        self.assertEqual(set(selection.results), set(SelectionMode))
        self.assertEqual(selection.result_for(SelectionMode.TILING).selected_count, 1)
        self.assertEqual(selection.result_for(SelectionMode.INTERFERENCE).selected_count, 0)
        self.assertEqual(selection.result_for(SelectionMode.ACTIVATION).selected_count, 1)

    def test_no_candidates(self):
        with self.assertRaises(NoCandidatesForTarget) as ctx:
            select_target("GENE9", [], build_selectors(PipelineConfig()))
        self.assertEqual(ctx.exception.target_id, "GENE9")


if __name__ == '__main__':
    unittest.main()
