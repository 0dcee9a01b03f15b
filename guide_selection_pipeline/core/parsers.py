#!/usr/bin/env python3

"""
File parsers for scored guides and the optional filter inputs.

Handles FlashFry scored-guide tables, literal motif lists and variant BED
files.
"""

import gzip
import logging
import math
import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from intervaltree import IntervalTree

from .data_structures import Candidate, ContigHeader
from .exceptions import ParseError, MalformedRecord, ConfigurationError


CONTIG_PATTERN = re.compile(
    r'^(?P<target>.+?)::'
    r'(?P<chrom>[^:\s]+):(?P<start>\d+)-(?P<end>\d+)\((?P<strand>[+-])\)'
    r'(?:::(?:TSS_)?(?P<tss_chrom>[^:\s]+):(?P<tss_pos>\d+))?$'
)

IN_GENOME_PATTERN = re.compile(r'^IN_GENOME=(\d+)$')

MOTIF_ALPHABET = re.compile(r'^[ACGT]+$')

REQUIRED_COLUMNS = ('contig', 'start', 'stop', 'orientation',
                    'dangerous_GC', 'dangerous_polyT', 'dangerous_in_genome')


def parse_contig_header(contig: str, line_number: int = 0) -> ContigHeader:
    """Parse `target::chr:start-end(strand)[::TSS_chr:pos]`."""
    match = CONTIG_PATTERN.match(contig.strip())
    if not match:
        raise MalformedRecord(f"Unrecognized contig identifier: '{contig}'", line_number=line_number)

    tss_chrom = match.group('tss_chrom')
    if tss_chrom is not None and tss_chrom != match.group('chrom'):
        raise MalformedRecord(
            f"TSS chromosome {tss_chrom} differs from region chromosome {match.group('chrom')}",
            line_number=line_number
        )

    tss_pos = match.group('tss_pos')
    return ContigHeader(
        target_id=match.group('target'),
        chromosome=match.group('chrom'),
        region_start=int(match.group('start')),
        region_end=int(match.group('end')),
        strand=match.group('strand'),
        tss_chromosome=tss_chrom,
        tss_position=int(tss_pos) if tss_pos is not None else None
    )


def is_confirmed_in_genome(value: str) -> bool:
    """A guide is confirmed when FlashFry saw exactly one genomic copy (its own site)."""
    match = IN_GENOME_PATTERN.match(value.strip())
    return bool(match) and int(match.group(1)) == 1


@dataclass(frozen=True)
class ColumnLayout:
    """Positions of the columns the parser needs, resolved from the header row."""
    contig: int
    start: int
    stop: int
    orientation: int
    score: int
    gc: int
    polyT: int
    in_genome: int
    target: Optional[int] = None

    @classmethod
    def from_header(cls, header: List[str], score_column: str,
                    require_target: bool = False) -> 'ColumnLayout':
        """Resolve column indices, failing on any missing required column.

        The guide sequence column (`target`) is only required when banned
        motifs are screened against it.
        """
        index = {name: i for i, name in enumerate(header)}

        required = REQUIRED_COLUMNS + (score_column,)
        if require_target:
            required += ('target',)
        missing = [name for name in required if name not in index]
        if missing:
            raise ConfigurationError(
                f"Scored guide table is missing required column(s): {', '.join(missing)}"
            )

        return cls(
            contig=index['contig'],
            start=index['start'],
            stop=index['stop'],
            orientation=index['orientation'],
            score=index[score_column],
            gc=index['dangerous_GC'],
            polyT=index['dangerous_polyT'],
            in_genome=index['dangerous_in_genome'],
            target=index.get('target')
        )

    @property
    def min_fields(self) -> int:
        indices = [self.contig, self.start, self.stop, self.orientation,
                   self.score, self.gc, self.polyT, self.in_genome]
        return max(indices) + 1


def parse_guide_record(fields: List[str], layout: ColumnLayout,
                       line_number: int = 0, input_index: int = 0) -> Candidate:
    """Turn one scored-guide row into a Candidate in genome coordinates."""
    if len(fields) < layout.min_fields:
        raise MalformedRecord(
            f"Expected at least {layout.min_fields} fields, found {len(fields)}",
            line_number=line_number
        )

    header = parse_contig_header(fields[layout.contig], line_number)

    try:
        rel_start = int(fields[layout.start])
        rel_end = int(fields[layout.stop])
    except ValueError:
        raise MalformedRecord(
            f"Non-numeric guide coordinates: {fields[layout.start]!r}-{fields[layout.stop]!r}",
            line_number=line_number
        )

    try:
        score = float(fields[layout.score])
    except ValueError:
        raise MalformedRecord(f"Non-numeric score: {fields[layout.score]!r}", line_number=line_number)

    if not math.isfinite(score):
        raise MalformedRecord(f"Non-finite score: {fields[layout.score]!r}", line_number=line_number)

    abs_start = header.region_start + rel_start
    abs_end = header.region_start + rel_end

    target_sequence = ""
    if layout.target is not None and layout.target < len(fields):
        target_sequence = fields[layout.target]

    try:
        return Candidate(
            target_id=header.target_id,
            chromosome=header.chromosome,
            abs_start=abs_start,
            abs_end=abs_end,
            strand=header.strand,
            orientation=fields[layout.orientation],
            score=score,
            tss_relative_offset=abs_start - header.tss_anchor,
            gc_flag=fields[layout.gc].strip(),
            polyT_flag=fields[layout.polyT].strip(),
            in_genome_confirmed=is_confirmed_in_genome(fields[layout.in_genome]),
            target_sequence=target_sequence,
            row=list(fields),
            input_index=input_index
        )
    except ValueError as e:
        raise MalformedRecord(str(e), line_number=line_number)


class ScoredGuideParser:
    """Parse a FlashFry scored-guide table in a single pass."""

    def __init__(self, file_path: str, score_column: str = "Hsu2013", require_target: bool = False):
        self.file_path = file_path
        self.score_column = score_column
        self.require_target = require_target
        self.header: List[str] = []
        self.total_rows = 0
        self.skipped_rows = 0

    def parse(self) -> List[Candidate]:
        """Read every row, skipping malformed ones with a warning."""
        logging.info(f"Parsing scored guide table: {self.file_path}")
        candidates: List[Candidate] = []

        try:
            with open(self.file_path, 'r') as f:
                header_line = f.readline()
                if not header_line.strip():
                    raise ParseError("Scored guide table is empty", self.file_path)

                self.header = header_line.rstrip('\n').rstrip('\r').split('\t')
                layout = ColumnLayout.from_header(self.header, self.score_column, self.require_target)

                for line_num, line in enumerate(f, 2):
                    line = line.rstrip('\n').rstrip('\r')
                    if not line.strip():
                        continue

                    self.total_rows += 1
                    try:
                        candidate = parse_guide_record(
                            line.split('\t'), layout, line_num, self.total_rows
                        )
                    except MalformedRecord as e:
                        self.skipped_rows += 1
                        logging.warning(f"Skipping row: {e}")
                        continue

                    candidates.append(candidate)

        except FileNotFoundError:
            raise ParseError(f"Scored guide table not found: {self.file_path}")

        if self.skipped_rows:
            logging.warning(f"Skipped {self.skipped_rows} malformed row(s) out of {self.total_rows}")
        logging.info(f"Parsed {len(candidates)} candidate guides from {self.total_rows} rows")
        return candidates


def normalise_motif(motif: str) -> str:
    """Upper-case a literal motif and check it is plain DNA."""
    motif = motif.strip().upper()
    if not MOTIF_ALPHABET.match(motif):
        raise ConfigurationError(f"Banned motif must be a literal A/C/G/T string: '{motif}'")
    return motif


def parse_motif_list(motifs: str) -> List[str]:
    """Parse a comma-separated list of literal motifs."""
    return unique_motifs(normalise_motif(m) for m in motifs.split(',') if m.strip())


def load_banned_motifs(file_path: str) -> List[str]:
    """Load literal motifs, one per line; blank lines and '#' comments are ignored."""
    motifs = []
    try:
        with open(file_path, 'r') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                try:
                    motifs.append(normalise_motif(line))
                except ConfigurationError as e:
                    raise ParseError(str(e), file_path, line_num)
    except FileNotFoundError:
        raise ParseError(f"Motif file not found: {file_path}")

    motifs = unique_motifs(motifs)
    logging.info(f"Loaded {len(motifs)} banned motifs from {file_path}")
    return motifs


def unique_motifs(motifs) -> List[str]:
    """Drop duplicates while keeping first-seen order."""
    return list(dict.fromkeys(motifs))


def _open_text(file_path: str):
    if file_path.endswith('.gz'):
        return gzip.open(file_path, 'rt')
    return open(file_path, 'r')


def load_variant_intervals(file_path: str) -> Dict[str, IntervalTree]:
    """Load a (optionally gzipped) BED file into one interval tree per chromosome."""
    logging.info(f"Loading variant intervals from {file_path}")
    trees: Dict[str, IntervalTree] = defaultdict(IntervalTree)
    count = 0

    try:
        with _open_text(file_path) as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith(('#', 'track', 'browser')):
                    continue

                parts = line.split('\t')
                if len(parts) < 3:
                    raise ParseError("BED line needs at least 3 columns", file_path, line_num)
                try:
                    start, end = int(parts[1]), int(parts[2])
                except ValueError:
                    raise ParseError(f"Non-numeric BED coordinates: {parts[1]}-{parts[2]}", file_path, line_num)

                # Point records still cover one base
                if end <= start:
                    end = start + 1
                trees[parts[0]].addi(start, end)
                count += 1
    except FileNotFoundError:
        raise ParseError(f"Variant BED file not found: {file_path}")

    logging.info(f"Loaded {count} variant intervals on {len(trees)} chromosomes")
    return dict(trees)
