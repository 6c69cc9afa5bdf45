"""
AWS Leftovers
=============

Entry point for listing and deleting leftover AWS resources.

Classes
-------
Leftovers
    Lists, filters, confirms and deletes resources of every supported
    AWS type.

Example
-------
>>> from leftovers.aws import Leftovers
>>> from leftovers.core import AWSClient, Logger
>>>
>>> leftovers = Leftovers(Logger(), AWSClient(region="us-west-2"))
>>> leftovers.list("ci-env-42")
>>> report = leftovers.delete("ci-env-42")
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple, Type

from leftovers.aws.ec2 import (
    Addresses,
    Instances,
    KeyPairs,
    SecurityGroups,
    Subnets,
    Volumes,
    Vpcs,
)
from leftovers.aws.iam import Policies, Roles, ServerCertificates
from leftovers.core.async_deleter import AsyncDeleter, DeleterConfig, RunReport
from leftovers.core.aws_client import AWSClient
from leftovers.core.base_lister import BaseLister
from leftovers.core.deletable import Deletable, ResourceGroup
from leftovers.core.exceptions import ListError
from leftovers.core.logger import Logger

# Module logger
logger = logging.getLogger(__name__)

# Listing order. Deletion order does not depend on it.
EC2_LISTERS: Tuple[Type[BaseLister], ...] = (
    Instances,
    Addresses,
    Volumes,
    KeyPairs,
    SecurityGroups,
    Subnets,
    Vpcs,
)
IAM_LISTERS: Tuple[Type[BaseLister], ...] = (Roles, Policies, ServerCertificates)

RESOURCE_TYPES: List[str] = [
    lister.resource_type for lister in EC2_LISTERS + IAM_LISTERS
]


class Leftovers:
    """
    Lists and deletes leftover resources in one AWS account and region.

    Parameters
    ----------
    logger : Logger
        Console logger for prompts and per-resource output.
    aws_client : AWSClient
        Provides the EC2 and IAM clients.
    config : DeleterConfig, optional
        Concurrency and retry settings for deletion.

    Notes
    -----
    A lister that fails is reported as a warning and skipped; the other
    types are still listed and deleted.
    """

    def __init__(
        self,
        logger: Logger,
        aws_client: AWSClient,
        config: Optional[DeleterConfig] = None,
    ) -> None:
        self.logger = logger
        self.async_deleter = AsyncDeleter(logger, config)

        ec2 = aws_client.get_ec2_client()
        iam = aws_client.get_iam_client()

        self.resources: List[BaseLister] = [
            *(lister(ec2, logger) for lister in EC2_LISTERS),
            *(lister(iam, logger) for lister in IAM_LISTERS),
        ]

    def list(self, filter: str = "", resource_type: Optional[str] = None) -> List[Deletable]:
        """
        Print every resource whose name contains ``filter``.

        Never prompts. Returns the resources that were printed. If
        ``resource_type`` is given, only that type is listed.
        """
        self.logger.no_confirm()

        listers = self.resources
        if resource_type is not None:
            listers = self._listers_for(resource_type)

        deletables: List[Deletable] = []
        for group in self._groups(filter, listers):
            deletables.extend(group)

        for d in deletables:
            self.logger.println(f"[{d.resource_type}: {d.name}]")

        return deletables

    def types(self) -> List[str]:
        """Print and return the resource types that can be deleted."""
        self.logger.no_confirm()

        types = [r.resource_type for r in self.resources]
        for resource_type in types:
            self.logger.println(resource_type)
        return types

    def delete(self, filter: str = "") -> RunReport:
        """
        List, confirm and delete every resource whose name contains ``filter``.

        Raises
        ------
        IncompleteDeletionError
            If any confirmed resource could not be deleted.
        """
        return self.async_deleter.run(self._groups(filter, self.resources))

    def delete_type(self, filter: str, resource_type: str) -> RunReport:
        """
        Like :meth:`delete`, restricted to one resource type.

        Only the lister for ``resource_type`` is called, so nothing of any
        other type is listed, prompted for, or deleted.

        Raises
        ------
        IncompleteDeletionError
            If any confirmed resource could not be deleted.
        """
        groups = self._groups(filter, self._listers_for(resource_type))
        return self.async_deleter.run_type(groups, resource_type)

    def _listers_for(self, resource_type: str) -> List[BaseLister]:
        listers = [r for r in self.resources if r.resource_type == resource_type]
        if not listers:
            logger.warning(f"No resource type named '{resource_type}'")
        return listers

    def _groups(self, filter: str, listers: List[BaseLister]) -> List[ResourceGroup]:
        groups: List[ResourceGroup] = []
        for lister in listers:
            try:
                groups.append(lister.group(filter))
            except ListError as e:
                self.logger.println(str(e), style="yellow")
        return groups

    def __repr__(self) -> str:
        return f"Leftovers(types={len(self.resources)})"
