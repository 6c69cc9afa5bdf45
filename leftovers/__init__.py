"""
Leftovers: Delete What an Environment Left Behind
=================================================

Lists the AWS resources whose names match a filter and deletes them
concurrently, retrying the ones blocked by a dependency that is itself
being deleted.

Modules
-------
core
    Provider-independent components (Deletable contract, async deleter,
    console logger, AWS client, exceptions)
aws
    AWS resource bindings and the :class:`Leftovers` entry point
reporters
    Output formatters (CLI, JSON)

Example
-------
>>> from leftovers import AWSClient, Leftovers, Logger
>>>
>>> leftovers = Leftovers(Logger(no_confirm=True), AWSClient(region="us-east-1"))
>>> report = leftovers.delete("ci-env-42")
>>> print(f"Deleted {report.succeeded_count} resources")

Notes
-----
Requires AWS credentials configured via:
- Environment variables (BBL_AWS_ACCESS_KEY_ID or AWS_ACCESS_KEY_ID, ...)
- AWS credentials file (~/.aws/credentials)
- IAM role (when running on AWS infrastructure)

See Also
--------
boto3 : AWS SDK for Python
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Public API
from leftovers.aws.leftovers import Leftovers
from leftovers.core.async_deleter import AsyncDeleter, DeleterConfig, RunReport
from leftovers.core.aws_client import AWSClient
from leftovers.core.deletable import Deletable, ResourceGroup
from leftovers.core.exceptions import IncompleteDeletionError, LeftoversError
from leftovers.core.logger import Logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Core classes
    "AsyncDeleter",
    "DeleterConfig",
    "RunReport",
    "Deletable",
    "ResourceGroup",
    "Logger",
    "AWSClient",
    # Providers
    "Leftovers",
    # Exceptions
    "LeftoversError",
    "IncompleteDeletionError",
]
