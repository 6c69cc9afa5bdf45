"""
Deletable Contract
==================

The minimal capability a resource handle must expose to be deleted by
the :class:`~leftovers.core.async_deleter.AsyncDeleter`.

Classes
-------
Deletable
    Structural protocol: ``name``, ``resource_type`` and ``delete()``.
ResourceGroup
    Ordered, immutable collection of Deletables sharing a type.

Notes
-----
Provider bindings conform to :class:`Deletable` structurally. They do not
inherit from it and share no behavior beyond the contract.

Example
-------
>>> @dataclass(frozen=True)
... class KeyPair:
...     client: Any
...     name: str
...     resource_type: str = "EC2 Key Pair"
...
...     def delete(self) -> None:
...         self.client.delete_key_pair(KeyName=self.name)
>>>
>>> group = ResourceGroup("EC2 Key Pair", [KeyPair(ec2, "ci-key")])
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Protocol, Sequence, Tuple, runtime_checkable


@runtime_checkable
class Deletable(Protocol):
    """
    A resource handle that can be deleted.

    Attributes
    ----------
    name : str
        Display name, unique within one listing of its type.
    resource_type : str
        Human-readable type label (e.g. ``"EC2 Instance"``).

    Methods
    -------
    delete()
        Delete the resource. Raises on failure; returns nothing.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def resource_type(self) -> str:
        ...

    def delete(self) -> None:
        ...


class ResourceGroup:
    """
    Deletables of a single type, as produced by one lister.

    Parameters
    ----------
    resource_type : str
        Type label shared by every member.
    members : iterable of Deletable
        Resources in listing order.

    Raises
    ------
    ValueError
        If a member's ``resource_type`` differs from the group's.
    """

    __slots__ = ("_resource_type", "_members")

    def __init__(self, resource_type: str, members: Iterable[Deletable] = ()) -> None:
        members = tuple(members)
        for member in members:
            if member.resource_type != resource_type:
                raise ValueError(
                    f"{member.resource_type} {member.name} does not belong "
                    f"in a group of {resource_type}"
                )
        self._resource_type = resource_type
        self._members: Tuple[Deletable, ...] = members

    @property
    def resource_type(self) -> str:
        return self._resource_type

    @property
    def members(self) -> Tuple[Deletable, ...]:
        return self._members

    def __iter__(self) -> Iterator[Deletable]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:
        return (
            f"ResourceGroup(resource_type='{self._resource_type}', "
            f"members={len(self._members)})"
        )


def flatten(groups: Sequence[ResourceGroup]) -> List[Deletable]:
    """Concatenate group members in group order."""
    return [member for group in groups for member in group]
