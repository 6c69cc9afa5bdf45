"""
AWS Provider
============

Listers, deletables and the :class:`Leftovers` entry point for AWS.

Available Resource Types
------------------------
EC2 Instance, EC2 Address, EC2 Volume, EC2 Key Pair, EC2 Security Group,
EC2 Subnet, EC2 VPC, IAM Role, IAM Policy, IAM Server Certificate.

Adding New Resource Types
-------------------------
1. Add a frozen dataclass with ``name``, a ``resource_type`` class
   variable and a ``delete()`` method that raises ``DeleteError``.
2. Add a :class:`~leftovers.core.base_lister.BaseLister` subclass whose
   ``get_all_resources()`` returns those handles.
3. Register the lister in ``EC2_LISTERS`` or ``IAM_LISTERS``.
"""

from leftovers.aws.leftovers import RESOURCE_TYPES, Leftovers

__all__ = ["Leftovers", "RESOURCE_TYPES"]
