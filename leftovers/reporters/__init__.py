"""
Reporters
=========

Output formatters for listings and deletion run reports.

Available Reporters
-------------------
CLIReporter
    Rich terminal tables and summaries.
JSONReporter
    JSON export of a :class:`~leftovers.core.async_deleter.RunReport`.
"""

from leftovers.reporters.cli_reporter import CLIReporter
from leftovers.reporters.json_reporter import JSONReporter

__all__ = [
    "CLIReporter",
    "JSONReporter",
]
