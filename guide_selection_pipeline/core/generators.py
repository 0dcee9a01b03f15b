#!/usr/bin/env python3

"""
Output generation for selected guides.

Writes the annotated guide table (original FlashFry columns plus one flag
column per selection mode) and a minimal position-sorted BED listing for
genome browsers.
"""

import logging
import os
from pathlib import Path
from typing import List

from .data_structures import FLAG_COLUMNS, MergedGuide
from .exceptions import NoGuidesSelected


def format_flag(value: bool) -> str:
    return "TRUE" if value else "FALSE"


def format_score(score: float) -> str:
    """Write integral scores without a trailing '.0'."""
    score = float(score)
    if score.is_integer():
        return str(int(score))
    return str(score)


def bed_path_for(output_path: str) -> str:
    """BED listing sits next to the table, with the extension swapped for .bed."""
    root, ext = os.path.splitext(output_path)
    if ext.lower() == '.bed':
        return output_path + '.bed'
    return root + '.bed'


class OutputGenerator:
    """Write the annotated guide table and the BED listing."""

    def __init__(self, output_path: str):
        self.output_path = output_path
        self.bed_path = bed_path_for(output_path)

    def generate_outputs(self, header: List[str], guides: List[MergedGuide]) -> List[str]:
        """Write both outputs; refuse to write anything when no guide was selected."""
        if not guides:
            raise NoGuidesSelected("No guides were selected for any target")

        ordered = sorted(guides, key=lambda g: g.sort_key)

        # Render everything first so a bad record leaves no partial output
        table_lines = self._annotated_table_lines(header, ordered)
        bed_lines = self._bed_lines(ordered)

        Path(self.output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, 'w') as f:
            f.writelines(table_lines)
        with open(self.bed_path, 'w') as f:
            f.writelines(bed_lines)

        logging.info(f"Wrote {len(ordered)} guides to {self.output_path}")
        logging.info(f"BED format for IGV visualization saved to: {self.bed_path}")
        return [self.output_path, self.bed_path]

    def _annotated_table_lines(self, header: List[str], guides: List[MergedGuide]) -> List[str]:
        width = len(header)
        lines = ['\t'.join(header + FLAG_COLUMNS) + '\n']
        for guide in guides:
            row = list(guide.candidate.row)
            # Keep flag columns aligned under their header
            if len(row) < width:
                row.extend([''] * (width - len(row)))
            elif len(row) > width:
                logging.warning(f"{guide.id}: dropping {len(row) - width} field(s) "
                                f"beyond the {width}-column header")
                row = row[:width]
            flags = [format_flag(flag) for flag in guide.flags]
            lines.append('\t'.join(row + flags) + '\n')
        return lines

    def _bed_lines(self, guides: List[MergedGuide]) -> List[str]:
        lines = []
        for guide in guides:
            c = guide.candidate
            lines.append(f"{c.chromosome}\t{c.abs_start}\t{c.abs_end}\t{c.id}\t"
                         f"{format_score(c.score)}\t{c.strand}\n")
        return lines
