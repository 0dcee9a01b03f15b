#!/usr/bin/env python3

"""
Main pipeline class for guide selection.

Integrates parsing, filtering, per-target selection, merging and report
generation.
"""

import logging
from collections import Counter
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .config import PipelineConfig
from .data_structures import Candidate, MergedGuide, SelectionMode
from .exceptions import PipelineError, NoCandidatesForTarget
from .filters import CandidateFilter
from .generators import OutputGenerator
from .merger import merge_selections
from .parsers import ScoredGuideParser, load_variant_intervals
from .selectors import TargetSelection, build_selectors, select_target
from ..utils.performance_monitor import PerformanceMonitor


@dataclass
class TargetOutcome:
    """Selections and merged guides for one target."""
    target_id: str
    selection: TargetSelection
    guides: List[MergedGuide] = field(default_factory=list)

    def count_for(self, mode: SelectionMode) -> int:
        result = self.selection.result_for(mode)
        return result.selected_count if result else 0


def group_by_target(candidates: List[Candidate]) -> Dict[str, List[Candidate]]:
    """Group candidates by target, keeping targets in first-seen order."""
    groups: Dict[str, List[Candidate]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.target_id, []).append(candidate)
    return groups


def process_target(target_id: str, candidates: List[Candidate],
                   config: PipelineConfig) -> TargetOutcome:
    """Select and merge guides for a single target.

    Builds its own selectors, so no state is shared between targets and the
    function can run in a worker process.
    """
    selection = select_target(target_id, candidates, build_selectors(config))
    guides = merge_selections(selection.results.values())
    return TargetOutcome(target_id=target_id, selection=selection, guides=guides)


class GuideSelectionPipeline:
    """Main pipeline class that coordinates all processing phases."""

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.monitor = PerformanceMonitor(
            memory_limit_mb=config.memory_limit_mb,
            enabled=config.enable_memory_monitoring
        )
        self.header: List[str] = []
        self.candidates: List[Candidate] = []
        self.target_candidates: Dict[str, List[Candidate]] = {}
        self.outcomes: Dict[str, TargetOutcome] = {}
        self.empty_targets: List[str] = []
        self.guides: List[MergedGuide] = []

        self.parser: Optional[ScoredGuideParser] = None
        self.candidate_filter: Optional[CandidateFilter] = None
        self.generator: Optional[OutputGenerator] = None

    def run(self, input_file: str, output_file: str,
            motifs: Optional[List[str]] = None,
            variants_file: Optional[str] = None) -> bool:
        """
        Run the complete guide selection pipeline.

        Args:
            input_file: FlashFry scored-guide table
            output_file: Path of the annotated guide table (BED listing goes next to it)
            motifs: Literal banned motifs, already expanded to both strands (optional)
            variants_file: BED file of variant positions to avoid (optional)

        Returns:
            True if pipeline completed successfully
        """
        output_dir = Path(output_file).parent
        output_dir.mkdir(parents=True, exist_ok=True)
        log_handler = self._setup_pipeline_logging(output_dir)

        try:
            logging.info("Starting guide selection pipeline")
            logging.info(f"Configuration: {self.config}")
            logging.info(f"Input file: {input_file}")
            logging.info(f"Output file: {output_file}")
            if motifs:
                logging.info(f"Banned motifs: {len(motifs)}")
            if variants_file:
                logging.info(f"Variants file: {variants_file}")

            # Phase 1: Parse input files
            self._parse_inputs(input_file, motifs, variants_file)

            # Phase 2: Apply quality, motif and variant filters
            self._filter_candidates()

            # Phase 3: Run selection strategies per target
            self._select_guides()

            # Phase 4: Write annotated table and BED listing
            self._generate_outputs(output_file)

            if self.config.generate_reports:
                self._generate_final_report(output_dir)

            logging.info(f"Guide selection complete! Selected {len(self.guides)} guides "
                         f"across {len(self.outcomes)} targets.")
            self.monitor.log_report()
            return True

        except (PipelineError, OSError) as e:
            logging.error(f"Pipeline failed: {e}")
            logging.debug("Full traceback:", exc_info=True)
            return False

        finally:
            logging.getLogger().removeHandler(log_handler)
            log_handler.close()

    def _setup_pipeline_logging(self, output_dir: Path) -> logging.Handler:
        """Set up pipeline-specific logging."""
        log_file = output_dir / 'guide_selection.log'

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        ))

        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)

        if self.config.debug_mode:
            root_logger.setLevel(logging.DEBUG)

        return file_handler

    def _parse_inputs(self, input_file: str, motifs: Optional[List[str]],
                      variants_file: Optional[str]) -> None:
        """Parse the scored table and the optional filter inputs."""
        with self.monitor.phase_context("input_parsing") as metrics:
            self.parser = ScoredGuideParser(input_file, self.config.score_column,
                                            require_target=bool(motifs))
            self.candidates = self.parser.parse()
            self.header = self.parser.header

            variant_trees = load_variant_intervals(variants_file) if variants_file else None
            self.candidate_filter = CandidateFilter(motifs=motifs, variant_trees=variant_trees)

            metrics.items = self.parser.total_rows

    def _filter_candidates(self) -> None:
        """Filter candidates, keeping every parsed target even if it loses all guides."""
        with self.monitor.phase_context("filtering") as metrics:
            self.target_candidates = self.filter_candidates(self.candidates)
            metrics.items = len(self.candidates)
            logging.info(f"Found {len(self.target_candidates)} unique targets to process")

    def filter_candidates(self, candidates: List[Candidate]) -> Dict[str, List[Candidate]]:
        """Apply the configured filters and group survivors by target."""
        if self.candidate_filter is None:
            self.candidate_filter = CandidateFilter()

        target_candidates: Dict[str, List[Candidate]] = {
            target_id: [] for target_id in group_by_target(candidates)
        }
        for candidate in self.candidate_filter.apply(candidates):
            target_candidates[candidate.target_id].append(candidate)
        return target_candidates

    def _select_guides(self) -> None:
        """Run the selection strategies for every target."""
        with self.monitor.phase_context("guide_selection") as metrics:
            self.guides = self.select_guides(self.target_candidates)
            metrics.items = len(self.target_candidates)

    def select_guides(self, target_candidates: Dict[str, List[Candidate]]) -> List[MergedGuide]:
        """
        Select guides for every target and return the merged set in position order.

        Targets are processed independently, in worker processes when
        parallel_workers > 1. Outcomes are joined before anything is returned.
        """
        self.outcomes = {}
        self.empty_targets = []

        if self.config.parallel_workers > 1 and len(target_candidates) > 1:
            self._select_in_parallel(target_candidates)
        else:
            for processed, (target_id, candidates) in enumerate(target_candidates.items(), 1):
                try:
                    self._record_outcome(process_target(target_id, candidates, self.config))
                except NoCandidatesForTarget as e:
                    self._record_empty_target(e)

                if processed % self.config.batch_size == 0:
                    self.monitor.check_memory_limit()

        # Workers finish in any order; report empty targets in input order
        empty = set(self.empty_targets)
        self.empty_targets = [target_id for target_id in target_candidates if target_id in empty]

        guides = [guide for target_id in target_candidates
                  if target_id in self.outcomes
                  for guide in self.outcomes[target_id].guides]
        return sorted(guides, key=lambda g: g.sort_key)

    def _select_in_parallel(self, target_candidates: Dict[str, List[Candidate]]) -> None:
        logging.info(f"Processing {len(target_candidates)} targets with "
                     f"{self.config.parallel_workers} workers")

        with ProcessPoolExecutor(max_workers=self.config.parallel_workers) as executor:
            futures = {
                executor.submit(process_target, target_id, candidates, self.config): target_id
                for target_id, candidates in target_candidates.items()
            }
            for completed, future in enumerate(as_completed(futures), 1):
                try:
                    self._record_outcome(future.result())
                except NoCandidatesForTarget as e:
                    self._record_empty_target(e)

                if completed % self.config.batch_size == 0:
                    self.monitor.check_memory_limit()

    def _record_outcome(self, outcome: TargetOutcome) -> None:
        self.outcomes[outcome.target_id] = outcome
        counts = ", ".join(f"{mode.value}={outcome.count_for(mode)}"
                           for mode in self.config.selection_modes)
        logging.info(f"Target {outcome.target_id}: {len(outcome.guides)} guides "
                     f"from {outcome.selection.candidate_count} candidates ({counts})")

    def _record_empty_target(self, error: NoCandidatesForTarget) -> None:
        self.empty_targets.append(error.target_id)
        logging.warning(f"{error}; skipping target")

    def _generate_outputs(self, output_file: str) -> None:
        """Generate output files."""
        with self.monitor.phase_context("output_generation") as metrics:
            self.generator = OutputGenerator(output_file)
            output_files = self.generator.generate_outputs(self.header, self.guides)
            metrics.items = len(self.guides)

            for file_path in output_files:
                logging.info(f"Created: {file_path}")

    def mode_totals(self) -> Counter:
        """Number of guides each mode contributed to the final set."""
        totals: Counter = Counter()
        for guide in self.guides:
            for mode in SelectionMode:
                if guide.is_flagged(mode):
                    totals[mode] += 1
        return totals

    def _generate_final_report(self, output_dir: Path) -> None:
        """Generate the processing report."""
        report_file = output_dir / 'processing_report.txt'

        performance = self.monitor.summary()
        totals = self.mode_totals()
        rejections = self.candidate_filter.rejections if self.candidate_filter else Counter()

        with open(report_file, 'w') as f:
            f.write("Guide Selection Pipeline - Processing Report\n")
            f.write("=" * 50 + "\n\n")

            f.write("INPUT STATISTICS\n")
            f.write("-" * 20 + "\n")
            if self.parser:
                f.write(f"Rows read: {self.parser.total_rows:,}\n")
                f.write(f"Malformed rows skipped: {self.parser.skipped_rows:,}\n")
            f.write(f"Candidate guides: {len(self.candidates):,}\n")
            f.write(f"Targets: {len(self.target_candidates):,}\n\n")

            f.write("FILTERING\n")
            f.write("-" * 20 + "\n")
            passed = sum(len(c) for c in self.target_candidates.values())
            f.write(f"Guides passing filters: {passed:,}\n")
            for reason, count in sorted(rejections.items()):
                f.write(f"Rejected ({reason}): {count:,}\n")
            f.write(f"Targets without candidates: {len(self.empty_targets):,}\n")
            for target_id in self.empty_targets:
                f.write(f"  {target_id}\n")
            f.write("\n")

            f.write("SELECTION RESULTS\n")
            f.write("-" * 20 + "\n")
            f.write(f"Selected guides (deduplicated): {len(self.guides):,}\n")
            for mode in self.config.selection_modes:
                f.write(f"  {mode.flag_column}: {totals[mode]:,}\n")
            f.write("\nPer target:\n")
            for target_id, outcome in sorted(self.outcomes.items()):
                counts = " ".join(f"{mode.value}={outcome.count_for(mode)}"
                                  for mode in self.config.selection_modes)
                f.write(f"  {target_id}: {len(outcome.guides)} guides ({counts})\n")
            f.write("\n")

            f.write("PERFORMANCE METRICS\n")
            f.write("-" * 20 + "\n")
            f.write(f"Total processing time: {performance['total_elapsed_time']:.2f} seconds\n")
            f.write(f"Peak memory usage: {performance['peak_memory_mb']:.1f} MB\n")
            for phase_name, phase_data in performance['phases'].items():
                f.write(f"{phase_name}: {phase_data['elapsed_time']:.2f}s "
                        f"({phase_data['items']} items)\n")

            f.write("\nConfiguration used:\n")
            for key, value in self.config.to_dict().items():
                f.write(f"  {key}: {value}\n")

        logging.info(f"Generated processing report: {report_file}")
