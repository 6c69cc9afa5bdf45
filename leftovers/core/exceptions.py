"""
Custom Exceptions for Leftovers
===============================

This module defines the exception hierarchy used throughout the
application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    LeftoversError (base)
    ├── AWSClientError
    │   └── CredentialsError
    ├── ListError
    ├── DeleteError
    └── IncompleteDeletionError

Only :class:`IncompleteDeletionError` ever leaves the deletion
orchestrator. Individual :class:`DeleteError` instances are recorded per
resource and surfaced through the run report.

Example
-------
>>> from leftovers.core.exceptions import IncompleteDeletionError
>>>
>>> try:
...     deleter.run(groups)
... except IncompleteDeletionError as e:
...     print(f"{e.report.failed_count} resources left behind")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from leftovers.core.async_deleter import RunReport


class LeftoversError(Exception):
    """
    Base exception for all Leftovers errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise LeftoversError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# AWS Client Exceptions
# =============================================================================


class AWSClientError(LeftoversError):
    """
    Base exception for AWS client-related errors.

    Raised when there's an issue with AWS connectivity, authentication,
    or service access.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The AWS service that caused the error.
    region : str, optional
        The AWS region where the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class CredentialsError(AWSClientError):
    """Raised when AWS credentials are invalid, missing, or expired."""

    pass


# =============================================================================
# Resource Exceptions
# =============================================================================


class ListError(LeftoversError):
    """
    Raised when a provider List API call fails.

    The message is kept short and without the details suffix so it can be
    printed as a one-line warning by the caller.

    Example
    -------
    >>> raise ListError("Describing instances: AccessDenied",
    ...                 resource_type="EC2 Instance")
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
    ) -> None:
        self.resource_type = resource_type
        super().__init__(message)


class DeleteError(LeftoversError):
    """
    Raised by a resource's ``delete()`` when the provider call fails.

    Example
    -------
    >>> raise DeleteError(
    ...     "Delete EC2 Security Group sg-123: DependencyViolation",
    ...     resource_name="sg-123",
    ...     resource_type="EC2 Security Group",
    ... )
    """

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        resource_type: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.resource_name = resource_name
        self.resource_type = resource_type
        self.error_code = error_code
        super().__init__(message)


class IncompleteDeletionError(LeftoversError):
    """
    Raised when resources remain undeleted after the retry policy ends.

    This is the only error returned from a deletion run. It summarizes
    the resources left behind and carries the full report; the individual
    errors were already logged as they happened.

    Parameters
    ----------
    report : RunReport
        The final report of the run.

    Attributes
    ----------
    report : RunReport
        The final report, including succeeded names.
    """

    def __init__(self, report: RunReport) -> None:
        self.report = report
        identifiers = ", ".join(str(key) for key in report.failed)
        count = len(report.failed)
        noun = "resource" if count == 1 else "resources"
        super().__init__(f"Failed to delete {count} {noun}: {identifiers}")
