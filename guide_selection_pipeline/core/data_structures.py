#!/usr/bin/env python3

"""
Core data structures for the guide selection pipeline.

Defines the candidate guide record, the exclusion zones used by tiling,
per-strategy selection results and the merged, flag-annotated guides that
end up in the report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SelectionMode(Enum):
    """The closed set of guide selection strategies."""
    TILING = "tiling"
    INTERFERENCE = "interference"
    ACTIVATION = "activation"

    @property
    def flag_column(self) -> str:
        """Name of the boolean column this mode contributes to the report."""
        return f"{self.value}_guide"

    @classmethod
    def from_name(cls, name: str) -> 'SelectionMode':
        """Look up a mode by its lowercase name."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown selection mode '{name}' (expected one of: {valid})")


# Report column order
FLAG_COLUMNS = [mode.flag_column for mode in SelectionMode]


@dataclass(frozen=True)
class ContigHeader:
    """Parsed form of a `target::chr:start-end(strand)[::TSS_chr:pos]` contig id."""
    target_id: str
    chromosome: str
    region_start: int
    region_end: int
    strand: str
    tss_chromosome: Optional[str] = None
    tss_position: Optional[int] = None

    @property
    def tss_anchor(self) -> int:
        """TSS position, falling back to the region start when no anchor was given."""
        if self.tss_position is None:
            return self.region_start
        return self.tss_position


@dataclass
class Candidate:
    """One scored guide, placed in genome coordinates."""
    target_id: str
    chromosome: str
    abs_start: int
    abs_end: int
    strand: str
    orientation: str
    score: float
    tss_relative_offset: int
    gc_flag: str = "NONE"
    polyT_flag: str = "NONE"
    in_genome_confirmed: bool = True
    target_sequence: str = ""
    row: List[str] = field(default_factory=list)
    input_index: int = 0

    def __post_init__(self):
        """Validate candidate data after initialization."""
        if self.abs_start >= self.abs_end:
            raise ValueError(f"Invalid guide coordinates: {self.abs_start}-{self.abs_end}")
        if self.strand not in ('+', '-'):
            raise ValueError(f"Invalid strand: {self.strand}")
        if not self.target_id:
            raise ValueError("Target ID cannot be empty")

    @property
    def id(self) -> str:
        """Stable identifier derived from target, position, strand and orientation."""
        return f"{self.target_id}_{self.abs_start}_{self.abs_end}_{self.strand}_{self.orientation}"

    def overlaps(self, start: int, end: int) -> bool:
        """Half-open overlap test against [start, end)."""
        return self.abs_start < end and self.abs_end > start


@dataclass(frozen=True)
class ExclusionZone:
    """A selected guide's footprint widened by the exclusion radius."""
    chromosome: str
    start: int
    end: int

    @classmethod
    def around(cls, candidate: Candidate, radius: int) -> 'ExclusionZone':
        """Build the zone for a candidate, clamping the start at 0."""
        if radius < 0:
            raise ValueError(f"Exclusion radius must be >= 0, got {radius}")
        return cls(
            chromosome=candidate.chromosome,
            start=max(0, candidate.abs_start - radius),
            end=candidate.abs_end + radius
        )

    def blocks(self, candidate: Candidate) -> bool:
        """Check if a candidate falls (even partly) inside this zone."""
        return candidate.chromosome == self.chromosome and candidate.overlaps(self.start, self.end)


@dataclass
class SelectionResult:
    """Guides one strategy picked for one target, in acceptance order."""
    target_id: str
    mode: SelectionMode
    candidates: List[Candidate] = field(default_factory=list)
    eligible_count: int = 0
    requested: Optional[int] = None

    @property
    def selected_count(self) -> int:
        return len(self.candidates)

    @property
    def is_short(self) -> bool:
        """True when a top-N strategy found fewer than N guides."""
        return self.requested is not None and self.selected_count < self.requested


@dataclass
class MergedGuide:
    """A selected candidate with one flag per strategy that chose it."""
    candidate: Candidate
    tiling: bool = False
    interference: bool = False
    activation: bool = False

    @property
    def id(self) -> str:
        return self.candidate.id

    def mark(self, mode: SelectionMode) -> None:
        """OR in the flag for a strategy."""
        setattr(self, mode.value, True)

    def is_flagged(self, mode: SelectionMode) -> bool:
        return getattr(self, mode.value)

    @property
    def flags(self) -> List[bool]:
        """Flags in report column order."""
        return [self.is_flagged(mode) for mode in SelectionMode]

    @property
    def sort_key(self):
        """Chromosome (lexical), then start, with end and id as tie-breakers."""
        c = self.candidate
        return (c.chromosome, c.abs_start, c.abs_end, c.id)
