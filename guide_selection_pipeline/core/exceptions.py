#!/usr/bin/env python3

"""
Custom exceptions for the guide selection pipeline.

Provides specific exception types so that row-level, target-level and
run-level failures can be told apart and handled at the right layer.
"""

class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""
    pass


class ParseError(PipelineError):
    """Error occurred while reading an input file."""

    def __init__(self, message: str, filename: str = "", line_number: int = 0):
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number

    def __str__(self):
        if self.filename and self.line_number:
            return f"Parse error in {self.filename} at line {self.line_number}: {super().__str__()}"
        elif self.filename:
            return f"Parse error in {self.filename}: {super().__str__()}"
        return super().__str__()


class MalformedRecord(ParseError):
    """A single scored-guide row could not be turned into a candidate."""

    def __str__(self):
        if self.line_number:
            return f"Malformed record at line {self.line_number}: {Exception.__str__(self)}"
        return f"Malformed record: {Exception.__str__(self)}"


class ConfigurationError(PipelineError):
    """Error in pipeline configuration."""
    pass


class NoCandidatesForTarget(PipelineError):
    """A target has no candidates left after filtering."""

    def __init__(self, target_id: str, message: str = "no candidates passed filtering"):
        # Both values go to args so the error survives pickling across worker processes
        super().__init__(target_id, message)
        self.target_id = target_id
        self.message = message

    def __str__(self):
        return f"Target {self.target_id}: {self.message}"


class NoGuidesSelected(PipelineError):
    """No guide was selected for any target, so there is nothing to report."""
    pass


class MemoryLimitError(PipelineError):
    """Memory usage exceeded limits."""

    def __init__(self, message: str, current_usage: float, limit: float):
        super().__init__(message)
        self.current_usage = current_usage
        self.limit = limit

    def __str__(self):
        return f"Memory error: {super().__str__()} (current: {self.current_usage:.1f}MB, limit: {self.limit:.1f}MB)"
