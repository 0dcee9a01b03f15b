#!/usr/bin/env python3

"""
Test suite for the guide selection pipeline.

Unit tests covering:
- Core data structures and their invariants
- Configuration management and validation
- Scored-guide parsing and the candidate filters
- Tiling and TSS-proximal selection strategies
- Merging, report generation and end-to-end runs
"""
