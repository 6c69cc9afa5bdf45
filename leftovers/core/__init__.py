"""
Core Components
===============

This module provides the provider-independent components of Leftovers:

- :class:`Deletable` - The contract every resource handle satisfies
- :class:`AsyncDeleter` - Concurrent deletion with bounded retries
- :class:`Logger` - Serialized console output and confirmation prompts
- :class:`BaseLister` - Abstract base class for resource listers
- :class:`AWSClient` - Manages AWS sessions and client creation
- Exception hierarchy for error handling

Classes
-------
Deletable
    Structural protocol: ``name``, ``resource_type``, ``delete()``.
ResourceGroup
    Immutable group of Deletables of one type.
AsyncDeleter
    Runs passes over the pending set until nothing more can be deleted.
DeleterConfig
    Concurrency and retry settings.
ResourceKey
    Type and name of a resource left behind.
RunReport
    Final report of a deletion run.
Logger
    Thread-safe console writer.
BaseLister
    Lists, filters and confirms resources of one type.
AWSClient
    AWS session and service client factory.

Exceptions
----------
LeftoversError
    Base exception for all Leftovers errors.
AWSClientError
    Base exception for AWS client errors.
CredentialsError
    Raised when credentials are invalid or missing.
ListError
    Raised when listing a resource type fails.
DeleteError
    Raised by a resource's ``delete()``.
IncompleteDeletionError
    Raised when resources remain after the retry policy ends.

Example
-------
>>> from leftovers.core import AsyncDeleter, DeleterConfig, Logger
>>>
>>> deleter = AsyncDeleter(Logger(), DeleterConfig(max_rounds=3))
>>> report = deleter.run(groups)
"""

from leftovers.core.async_deleter import (
    AsyncDeleter,
    AttemptOutcome,
    AttemptRunner,
    DeleterConfig,
    ResultAggregator,
    ResourceKey,
    RetryScheduler,
    RunReport,
)
from leftovers.core.aws_client import AWSClient
from leftovers.core.base_lister import BaseLister
from leftovers.core.deletable import Deletable, ResourceGroup, flatten
from leftovers.core.exceptions import (
    AWSClientError,
    CredentialsError,
    DeleteError,
    IncompleteDeletionError,
    LeftoversError,
    ListError,
)
from leftovers.core.logger import Logger

__all__ = [
    # Contract
    "Deletable",
    "ResourceGroup",
    "flatten",
    # Deletion
    "AsyncDeleter",
    "AttemptOutcome",
    "AttemptRunner",
    "DeleterConfig",
    "ResultAggregator",
    "ResourceKey",
    "RetryScheduler",
    "RunReport",
    # Collaborators
    "Logger",
    "BaseLister",
    "AWSClient",
    # Exceptions - Base
    "LeftoversError",
    # Exceptions - AWS Client
    "AWSClientError",
    "CredentialsError",
    # Exceptions - Resources
    "ListError",
    "DeleteError",
    "IncompleteDeletionError",
]
