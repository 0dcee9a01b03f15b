#!/usr/bin/env python3

"""
Command-line interface for the guide selection pipeline.

Selects tiling, CRISPRi-proximal and CRISPRa-proximal guides from a FlashFry
scored-guide table and writes an annotated table plus a BED listing.
"""

import argparse
import sys
import os
import logging

from guide_selection_pipeline.core.config import load_config
from guide_selection_pipeline.core.exceptions import PipelineError
from guide_selection_pipeline.core.parsers import load_banned_motifs, parse_motif_list, unique_motifs


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Select optimally-spaced and TSS-proximal guides from FlashFry scored output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # All three selection modes with defaults
  python pipeline_cli.py --input guides.scored.txt --output output/selected_guides.txt

  # Tiling only, 100 bp exclusion zones, avoid BsaI sites and K562 variants
  python pipeline_cli.py -i guides.scored.txt -o output/tiling.txt --modes tiling -z 100 \\
      --motifs GGTCTC,GAGACC --variants K562_variants.bed.gz
        """
    )

    # Required arguments
    parser.add_argument(
        '-i', '--input',
        required=True,
        help='Input scored guides file (FlashFry score output)'
    )
    parser.add_argument(
        '-o', '--output',
        default='output/selected_guides.txt',
        help='Output selected guides file; the BED listing is written next to it '
             '(default: output/selected_guides.txt)'
    )

    # Selection parameters
    parser.add_argument(
        '-z', '--zone-size', '--exclusion-radius',
        dest='exclusion_radius',
        type=int,
        help='Exclusion zone radius around each tiling guide in bp (default: 50)'
    )
    parser.add_argument(
        '-n', '--target-count',
        type=int,
        help='Guides per target for the interference and activation modes (default: 3)'
    )
    parser.add_argument(
        '-m', '--min-score',
        type=float,
        help='Warn when a tiling guide scores below this value (default: 60)'
    )
    parser.add_argument(
        '-s', '--score-column',
        help='Score column used for ranking (default: Hsu2013)'
    )
    parser.add_argument(
        '--modes',
        help='Comma-separated selection modes: tiling,interference,activation (default: all)'
    )

    # Optional filters
    parser.add_argument(
        '--motifs',
        help='Comma-separated literal motifs to avoid (both strands already expanded)'
    )
    parser.add_argument(
        '--motif-file',
        help='File of literal motifs to avoid, one per line'
    )
    parser.add_argument(
        '--variants',
        help='BED file (optionally gzipped) of variant positions guides must not overlap'
    )

    parser.add_argument(
        '--config',
        help='Configuration file (JSON or YAML)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Number of worker processes for per-target selection (default: 1)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    return parser


def validate_input_files(args) -> None:
    """Validate that input files exist."""
    input_files = {
        'input': args.input,
        'motif-file': args.motif_file,
        'variants': args.variants
    }

    for file_type, file_path in input_files.items():
        if file_path and not os.path.exists(file_path):
            raise FileNotFoundError(f"{file_type} file not found: {file_path}")


def collect_motifs(args):
    """Combine motifs given on the command line and in a motif file."""
    motifs = []
    if args.motifs:
        motifs.extend(parse_motif_list(args.motifs))
    if args.motif_file:
        motifs.extend(load_banned_motifs(args.motif_file))
    return unique_motifs(motifs)


def main(argv=None):
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        validate_input_files(args)

        config = load_config(config_path=args.config, use_env=True)

        # Override config with command line arguments
        if args.exclusion_radius is not None:
            config.exclusion_radius = args.exclusion_radius
        if args.target_count is not None:
            config.target_count = args.target_count
        if args.min_score is not None:
            config.min_score = args.min_score
        if args.score_column is not None:
            config.score_column = args.score_column
        if args.modes is not None:
            config.modes = [m.strip() for m in args.modes.split(',') if m.strip()]
        if args.workers is not None:
            config.parallel_workers = args.workers

        # Re-validate after CLI overrides.
        config.validate()

        motifs = collect_motifs(args)

        logger.info("Starting guide selection pipeline...")
        logger.info(f"Input: {args.input}")
        logger.info(f"Output: {args.output}")
        logger.info(f"Modes: {', '.join(m.value for m in config.selection_modes)}")
        logger.info(f"Exclusion radius: {config.exclusion_radius} bp")
        logger.info(f"Target count: {config.target_count}")

        from guide_selection_pipeline import GuideSelectionPipeline

        pipeline = GuideSelectionPipeline(config)
        success = pipeline.run(
            input_file=args.input,
            output_file=args.output,
            motifs=motifs,
            variants_file=args.variants
        )

        if success:
            logger.info("Pipeline completed successfully!")
            return 0
        else:
            logger.error("Pipeline failed!")
            return 1

    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        return 1
    except PipelineError as e:
        logger.error(f"Pipeline error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
