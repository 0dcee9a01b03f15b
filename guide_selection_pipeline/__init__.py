#!/usr/bin/env python3

"""
Guide Selection Pipeline

Selects spaced CRISPR guide-RNA libraries around transcription start sites
from FlashFry scored-guide tables.

This modular implementation provides:
- Parsing of scored guides into genome coordinates relative to the TSS
- Quality, banned-motif and variant-overlap filters
- Tiling, CRISPRi-proximal and CRISPRa-proximal selection strategies
- Deduplicated, flag-annotated reports plus a BED listing for genome browsers

Modules:
- core: Data structures, exceptions, configuration and processing components
- utils: Performance monitoring
- tests: Unit test suite
"""

__version__ = "1.0.0"
__author__ = "Guide Selection Pipeline Team"

from .core.data_structures import (
    Candidate, ContigHeader, ExclusionZone, SelectionResult, MergedGuide, SelectionMode
)
from .core.exceptions import (
    PipelineError, ParseError, MalformedRecord, ConfigurationError,
    NoCandidatesForTarget, NoGuidesSelected, MemoryLimitError
)
from .core.config import PipelineConfig, load_config
from .core.pipeline import GuideSelectionPipeline

__all__ = [
    # Main pipeline
    'GuideSelectionPipeline',
    # Data structures
    'Candidate', 'ContigHeader', 'ExclusionZone', 'SelectionResult', 'MergedGuide', 'SelectionMode',
    # Exceptions
    'PipelineError', 'ParseError', 'MalformedRecord', 'ConfigurationError',
    'NoCandidatesForTarget', 'NoGuidesSelected', 'MemoryLimitError',
    # Configuration
    'PipelineConfig', 'load_config'
]
