"""
Base Lister Module
==================

Provides the abstract base class for all resource listers.

A lister fetches every resource of one type from a provider, keeps the
ones whose name contains the filter, asks the user to confirm each of
them, and hands the confirmed ones to the deleter as a
:class:`~leftovers.core.deletable.ResourceGroup`.

Classes
-------
BaseLister
    Abstract base class for resource listers.

Example
-------
>>> from leftovers.core.base_lister import BaseLister
>>>
>>> class KeyPairs(BaseLister):
...     resource_type = "EC2 Key Pair"
...
...     def get_all_resources(self):
...         response = self.client.describe_key_pairs()
...         return [KeyPair(self.client, k["KeyName"]) for k in response["KeyPairs"]]
>>>
>>> group = KeyPairs(ec2, logger).group("ci")

Notes
-----
Implementations raise :class:`~leftovers.core.exceptions.ListError` when
the provider List API fails. Listing errors never reach the deleter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List

from leftovers.core.deletable import Deletable, ResourceGroup
from leftovers.core.logger import Logger

# Module logger
logger = logging.getLogger(__name__)


class BaseLister(ABC):
    """
    Abstract base class for all resource listers.

    Parameters
    ----------
    client : Any
        Provider service client (e.g. a boto3 EC2 client).
    logger : Logger
        Console logger used for confirmation prompts.

    Attributes
    ----------
    resource_type : str
        Type label of the resources this lister produces. Set by
        subclasses.
    """

    resource_type: str = ""

    def __init__(self, client: Any, logger: Logger) -> None:
        self.client = client
        self.logger = logger

    @abstractmethod
    def get_all_resources(self) -> List[Deletable]:
        """
        Fetch every deletable resource of this type.

        Returns
        -------
        list of Deletable
            All resources, unfiltered.

        Raises
        ------
        ListError
            If the provider List API fails.
        """
        pass

    def list(self, filter: str = "") -> List[Deletable]:
        """
        Return the resources to delete.

        Parameters
        ----------
        filter : str, default=""
            Substring that must appear in a resource's name. Empty keeps
            everything.

        Returns
        -------
        list of Deletable
            Resources that match ``filter`` and were confirmed.

        Raises
        ------
        ListError
            If the provider List API fails.
        """
        resources = self.get_all_resources()
        matching = [r for r in resources if filter in r.name]

        selected = [
            r
            for r in matching
            if self.logger.prompt_with_details(r.resource_type, r.name)
        ]

        logger.debug(
            f"{self.resource_type}: {len(resources)} found, {len(matching)} "
            f"match '{filter}', {len(selected)} selected"
        )
        return selected

    def group(self, filter: str = "") -> ResourceGroup:
        """Return :meth:`list` as a :class:`ResourceGroup`."""
        return ResourceGroup(self.resource_type, self.list(filter))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(resource_type='{self.resource_type}')"
