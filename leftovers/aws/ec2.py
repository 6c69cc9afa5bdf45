"""
EC2 Resources
=============

Listers and deletables for EC2 resource types.

Classes
-------
Instances, SecurityGroups, Volumes, KeyPairs, Addresses, Subnets, Vpcs
    Listers, one per resource type.
Instance, SecurityGroup, Volume, KeyPair, Address, Subnet, Vpc
    Deletable handles produced by the listers.

Example
-------
>>> from leftovers.aws.ec2 import SecurityGroups
>>>
>>> lister = SecurityGroups(aws_client.get_ec2_client(), logger)
>>> group = lister.group("ci-env-42")

Notes
-----
Names carry the resource ID so they are unique within a listing, e.g.
``i-0abc (Name:web)``. Deleting a resource that is already gone counts
as a success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from botocore.exceptions import ClientError

from leftovers.aws.errors import error_code, error_message, is_not_found
from leftovers.core.base_lister import BaseLister
from leftovers.core.deletable import Deletable
from leftovers.core.exceptions import DeleteError, ListError

# Module logger
logger = logging.getLogger(__name__)


def _tags(resource: Dict[str, Any]) -> Dict[str, str]:
    return {tag["Key"]: tag["Value"] for tag in resource.get("Tags") or []}


def _tagged_name(resource_id: str, tags: Dict[str, str]) -> str:
    name = tags.get("Name")
    if name:
        return f"{resource_id} (Name:{name})"
    return resource_id


def _delete_error(resource: Deletable, error: Exception) -> DeleteError:
    return DeleteError(
        f"Delete {resource.resource_type} {resource.name}: {error_message(error)}",
        resource_name=resource.name,
        resource_type=resource.resource_type,
        error_code=error_code(error),
    )


# =============================================================================
# Instances
# =============================================================================


@dataclass(frozen=True)
class Instance:
    """An EC2 instance. Deleting it terminates it."""

    resource_type: ClassVar[str] = "EC2 Instance"

    client: Any = field(repr=False, compare=False)
    instance_id: str
    name: str

    def delete(self) -> None:
        try:
            self.client.terminate_instances(InstanceIds=[self.instance_id])
        except ClientError as e:
            if is_not_found(e):
                logger.debug(f"Instance {self.instance_id} already gone")
                return
            raise _delete_error(self, e)


class Instances(BaseLister):
    """Lists EC2 instances that are not yet terminated."""

    resource_type = "EC2 Instance"

    def get_all_resources(self) -> List[Deletable]:
        instances: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("describe_instances")
            for page in paginator.paginate():
                for reservation in page.get("Reservations", []):
                    for instance in reservation.get("Instances", []):
                        if instance.get("State", {}).get("Name") == "terminated":
                            continue
                        instance_id = instance["InstanceId"]
                        instances.append(
                            Instance(
                                client=self.client,
                                instance_id=instance_id,
                                name=self._name(instance_id, instance),
                            )
                        )
        except ClientError as e:
            raise ListError(
                f"Describing instances: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return instances

    @staticmethod
    def _name(instance_id: str, instance: Dict[str, Any]) -> str:
        tags = _tags(instance)
        if tags.get("Name"):
            return _tagged_name(instance_id, tags)
        key_name = instance.get("KeyName")
        if key_name:
            return f"{instance_id} (KeyPairName:{key_name})"
        return instance_id


# =============================================================================
# Security Groups
# =============================================================================


@dataclass(frozen=True)
class SecurityGroup:
    """
    An EC2 security group.

    Its rules are revoked before deletion so that groups referencing each
    other do not block one another.
    """

    resource_type: ClassVar[str] = "EC2 Security Group"

    # Common error codes and user-friendly messages
    ERROR_MESSAGES: ClassVar[Dict[str, str]] = {
        "DependencyViolation": "Security group is still in use by another resource",
        "InvalidGroup.InUse": "Security group is referenced by another security group",
        "UnauthorizedOperation": "Insufficient permissions to delete security group",
    }

    client: Any = field(repr=False, compare=False)
    group_id: str
    name: str
    ingress: tuple = field(default=(), repr=False, compare=False)
    egress: tuple = field(default=(), repr=False, compare=False)

    def delete(self) -> None:
        try:
            if self.ingress:
                self.client.revoke_security_group_ingress(
                    GroupId=self.group_id, IpPermissions=list(self.ingress)
                )
            if self.egress:
                self.client.revoke_security_group_egress(
                    GroupId=self.group_id, IpPermissions=list(self.egress)
                )
        except ClientError as e:
            if is_not_found(e):
                return
            # Rules may already be gone after an earlier pass.
            if error_code(e) != "InvalidPermission.NotFound":
                logger.warning(f"Revoking rules of {self.group_id}: {error_message(e)}")

        try:
            self.client.delete_security_group(GroupId=self.group_id)
        except ClientError as e:
            if is_not_found(e):
                return
            friendly = self.ERROR_MESSAGES.get(error_code(e))
            if friendly:
                raise DeleteError(
                    f"Delete {self.resource_type} {self.name}: {friendly}",
                    resource_name=self.name,
                    resource_type=self.resource_type,
                    error_code=error_code(e),
                )
            raise _delete_error(self, e)


class SecurityGroups(BaseLister):
    """Lists security groups, excluding each VPC's default group."""

    resource_type = "EC2 Security Group"

    def get_all_resources(self) -> List[Deletable]:
        groups: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("describe_security_groups")
            for page in paginator.paginate():
                for sg in page.get("SecurityGroups", []):
                    if sg.get("GroupName") == "default":
                        continue
                    groups.append(
                        SecurityGroup(
                            client=self.client,
                            group_id=sg["GroupId"],
                            name=f"{sg['GroupName']} ({sg['GroupId']})",
                            ingress=tuple(sg.get("IpPermissions") or ()),
                            egress=tuple(sg.get("IpPermissionsEgress") or ()),
                        )
                    )
        except ClientError as e:
            raise ListError(
                f"Describing security groups: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return groups


# =============================================================================
# Volumes
# =============================================================================


@dataclass(frozen=True)
class Volume:
    """An unattached EBS volume."""

    resource_type: ClassVar[str] = "EC2 Volume"

    client: Any = field(repr=False, compare=False)
    volume_id: str
    name: str

    def delete(self) -> None:
        try:
            self.client.delete_volume(VolumeId=self.volume_id)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)


class Volumes(BaseLister):
    """Lists EBS volumes in the ``available`` state."""

    resource_type = "EC2 Volume"

    def get_all_resources(self) -> List[Deletable]:
        volumes: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("describe_volumes")
            for page in paginator.paginate(
                Filters=[{"Name": "status", "Values": ["available"]}]
            ):
                for volume in page.get("Volumes", []):
                    volume_id = volume["VolumeId"]
                    volumes.append(
                        Volume(
                            client=self.client,
                            volume_id=volume_id,
                            name=_tagged_name(volume_id, _tags(volume)),
                        )
                    )
        except ClientError as e:
            raise ListError(
                f"Describing volumes: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return volumes


# =============================================================================
# Key Pairs
# =============================================================================


@dataclass(frozen=True)
class KeyPair:
    resource_type: ClassVar[str] = "EC2 Key Pair"

    client: Any = field(repr=False, compare=False)
    name: str

    def delete(self) -> None:
        try:
            self.client.delete_key_pair(KeyName=self.name)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)


class KeyPairs(BaseLister):
    resource_type = "EC2 Key Pair"

    def get_all_resources(self) -> List[Deletable]:
        try:
            response = self.client.describe_key_pairs()
        except ClientError as e:
            raise ListError(
                f"Describing key pairs: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return [
            KeyPair(client=self.client, name=key["KeyName"])
            for key in response.get("KeyPairs", [])
        ]


# =============================================================================
# Elastic IP Addresses
# =============================================================================


@dataclass(frozen=True)
class Address:
    """An Elastic IP address. Deleting it releases it."""

    resource_type: ClassVar[str] = "EC2 Address"

    client: Any = field(repr=False, compare=False)
    public_ip: str
    name: str
    allocation_id: Optional[str] = None

    def delete(self) -> None:
        try:
            if self.allocation_id:
                self.client.release_address(AllocationId=self.allocation_id)
            else:
                self.client.release_address(PublicIp=self.public_ip)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)


class Addresses(BaseLister):
    """Lists Elastic IPs that are not associated with anything."""

    resource_type = "EC2 Address"

    def get_all_resources(self) -> List[Deletable]:
        try:
            response = self.client.describe_addresses()
        except ClientError as e:
            raise ListError(
                f"Describing addresses: {error_message(e)}",
                resource_type=self.resource_type,
            )

        addresses: List[Deletable] = []
        for address in response.get("Addresses", []):
            # Associated addresses are released with their instance.
            if address.get("AssociationId") or address.get("InstanceId"):
                continue
            public_ip = address["PublicIp"]
            addresses.append(
                Address(
                    client=self.client,
                    public_ip=public_ip,
                    name=_tagged_name(public_ip, _tags(address)),
                    allocation_id=address.get("AllocationId"),
                )
            )
        return addresses


# =============================================================================
# Subnets
# =============================================================================


@dataclass(frozen=True)
class Subnet:
    resource_type: ClassVar[str] = "EC2 Subnet"

    client: Any = field(repr=False, compare=False)
    subnet_id: str
    name: str

    def delete(self) -> None:
        try:
            self.client.delete_subnet(SubnetId=self.subnet_id)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)


class Subnets(BaseLister):
    """Lists subnets, excluding default subnets."""

    resource_type = "EC2 Subnet"

    def get_all_resources(self) -> List[Deletable]:
        subnets: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("describe_subnets")
            for page in paginator.paginate():
                for subnet in page.get("Subnets", []):
                    if subnet.get("DefaultForAz"):
                        continue
                    subnet_id = subnet["SubnetId"]
                    subnets.append(
                        Subnet(
                            client=self.client,
                            subnet_id=subnet_id,
                            name=_tagged_name(subnet_id, _tags(subnet)),
                        )
                    )
        except ClientError as e:
            raise ListError(
                f"Describing subnets: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return subnets


# =============================================================================
# VPCs
# =============================================================================


@dataclass(frozen=True)
class Vpc:
    """
    A non-default VPC.

    Internet gateways attached to it are detached and deleted first; any
    other dependency (subnets, security groups, instances) makes the
    delete fail until a later pass.
    """

    resource_type: ClassVar[str] = "EC2 VPC"

    client: Any = field(repr=False, compare=False)
    vpc_id: str
    name: str

    def delete(self) -> None:
        try:
            self._delete_internet_gateways()
            self.client.delete_vpc(VpcId=self.vpc_id)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)

    def _delete_internet_gateways(self) -> None:
        response = self.client.describe_internet_gateways(
            Filters=[{"Name": "attachment.vpc-id", "Values": [self.vpc_id]}]
        )
        for gateway in response.get("InternetGateways", []):
            gateway_id = gateway["InternetGatewayId"]
            self.client.detach_internet_gateway(
                InternetGatewayId=gateway_id, VpcId=self.vpc_id
            )
            self.client.delete_internet_gateway(InternetGatewayId=gateway_id)
            logger.debug(f"Deleted internet gateway {gateway_id} of {self.vpc_id}")


class Vpcs(BaseLister):
    """Lists VPCs, excluding the default VPC."""

    resource_type = "EC2 VPC"

    def get_all_resources(self) -> List[Deletable]:
        vpcs: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("describe_vpcs")
            for page in paginator.paginate(
                Filters=[{"Name": "is-default", "Values": ["false"]}]
            ):
                for vpc in page.get("Vpcs", []):
                    if vpc.get("IsDefault"):
                        continue
                    vpc_id = vpc["VpcId"]
                    vpcs.append(
                        Vpc(
                            client=self.client,
                            vpc_id=vpc_id,
                            name=_tagged_name(vpc_id, _tags(vpc)),
                        )
                    )
        except ClientError as e:
            raise ListError(
                f"Describing VPCs: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return vpcs
