#!/usr/bin/env python3

"""
Core module for the guide selection pipeline.

Contains fundamental data structures, exception types, configuration
management and the processing components.
"""

from .data_structures import (
    Candidate, ContigHeader, ExclusionZone, SelectionResult, MergedGuide, SelectionMode
)
from .exceptions import (
    PipelineError, ParseError, MalformedRecord, ConfigurationError,
    NoCandidatesForTarget, NoGuidesSelected, MemoryLimitError
)
from .config import PipelineConfig, load_config

__all__ = [
    'Candidate', 'ContigHeader', 'ExclusionZone', 'SelectionResult', 'MergedGuide', 'SelectionMode',
    'PipelineError', 'ParseError', 'MalformedRecord', 'ConfigurationError',
    'NoCandidatesForTarget', 'NoGuidesSelected', 'MemoryLimitError',
    'PipelineConfig', 'load_config'
]
