"""
JSON Reporter Module
====================

Exports deletion run reports to JSON for CI pipelines and audit trails.

Classes
-------
JSONReporter
    Main reporter class for JSON export.

Example
-------
>>> from leftovers.reporters import JSONReporter
>>>
>>> reporter = JSONReporter(output_path="leftovers-report.json")
>>> filepath = reporter.report(run_report)
>>>
>>> # Or get as string
>>> json_str = reporter.to_string(run_report)

Output Structure
----------------
::

    {
      "metadata": {
        "status": "incomplete",
        "succeeded_count": 12,
        "failed_count": 1,
        "rounds": 2,
        "attempts": 14,
        "start_time": "2024-01-15T10:30:00",
        "end_time": "2024-01-15T10:30:09"
      },
      "succeeded": ["i-0abc (Name:web)", ...],
      "failed": [
        {"name": "sg-1 (web)", "resource_type": "EC2 Security Group",
         "error": "Delete EC2 Security Group sg-1 (web): ..."}
      ]
    }

See Also
--------
CLIReporter : For terminal display.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from leftovers.core.async_deleter import RunReport

# Module logger
logger = logging.getLogger(__name__)


class JSONReporter:
    """
    Reporter for exporting run reports to JSON format.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    indent : int, default=2
        JSON indentation level. Set to None for compact output.
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        indent: Optional[int] = 2,
    ) -> None:
        """Initialize the JSON reporter with optional output path and indentation."""
        self.output_path = output_path
        self.indent = indent
        logger.debug(f"Initialized JSONReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"leftovers_report_{timestamp}.json")

    def report(self, report: RunReport) -> str:
        """
        Write ``report`` to a JSON file.

        Returns
        -------
        str
            Path to the created JSON file.
        """
        output_path = self._get_output_path()

        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.to_string(report))

        logger.info(f"JSON export complete: {output_path}")
        return str(output_path)

    def to_string(self, report: RunReport) -> str:
        """Convert ``report`` to a JSON string without writing a file."""
        return json.dumps(self.to_dict(report), indent=self.indent, default=str)

    def to_dict(self, report: RunReport) -> Dict[str, Any]:
        """
        Build the export structure for ``report``.

        Example
        -------
        >>> data = JSONReporter().to_dict(run_report)
        >>> data["metadata"]["status"]
        'complete'
        """
        data = report.to_dict()
        return {
            "metadata": {
                "status": "incomplete" if report.has_failures else "complete",
                "succeeded_count": data["succeeded_count"],
                "failed_count": data["failed_count"],
                "rounds": data["rounds"],
                "attempts": data["attempts"],
                "start_time": data["start_time"],
                "end_time": data["end_time"],
            },
            "succeeded": data["succeeded"],
            "failed": data["failed"],
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return f"JSONReporter(output_path={self.output_path!r}, indent={self.indent})"
