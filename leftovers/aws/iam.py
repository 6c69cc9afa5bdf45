"""
IAM Resources
=============

Listers and deletables for IAM resource types.

IAM entities usually have children that must go first: policy versions,
inline and attached role policies, instance profile memberships. Each
``delete()`` removes those children itself before deleting the entity.
Failing to remove one child is logged as a warning; the entity delete
that follows then reports the real failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, List

from botocore.exceptions import ClientError

from leftovers.aws.errors import error_code, error_message, is_not_found
from leftovers.core.base_lister import BaseLister
from leftovers.core.deletable import Deletable
from leftovers.core.exceptions import DeleteError, ListError
from leftovers.core.logger import Logger


def _delete_error(resource: Deletable, error: Exception) -> DeleteError:
    return DeleteError(
        f"Delete {resource.resource_type} {resource.name}: {error_message(error)}",
        resource_name=resource.name,
        resource_type=resource.resource_type,
        error_code=error_code(error),
    )


# =============================================================================
# Policies
# =============================================================================


@dataclass(frozen=True)
class Policy:
    """A customer managed IAM policy."""

    resource_type: ClassVar[str] = "IAM Policy"

    client: Any = field(repr=False, compare=False)
    logger: Logger = field(repr=False, compare=False)
    name: str
    arn: str

    def delete(self) -> None:
        try:
            versions = self.client.list_policy_versions(PolicyArn=self.arn)
        except ClientError as e:
            if is_not_found(e):
                return
            raise DeleteError(
                f"List policy versions for {self.resource_type} {self.name}: "
                f"{error_message(e)}",
                resource_name=self.name,
                resource_type=self.resource_type,
                error_code=error_code(e),
            )

        for version in versions.get("Versions", []):
            if version.get("IsDefaultVersion"):
                continue
            try:
                self.client.delete_policy_version(
                    PolicyArn=self.arn, VersionId=version["VersionId"]
                )
            except ClientError as e:
                self.logger.printf(
                    "[WARNING] Delete policy version %s of %s %s: %s",
                    version["VersionId"],
                    self.resource_type,
                    self.name,
                    error_message(e),
                    style="yellow",
                )

        try:
            self.client.delete_policy(PolicyArn=self.arn)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)


class Policies(BaseLister):
    """Lists customer managed policies (``Scope=Local``)."""

    resource_type = "IAM Policy"

    def get_all_resources(self) -> List[Deletable]:
        policies: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("list_policies")
            for page in paginator.paginate(Scope="Local"):
                for policy in page.get("Policies", []):
                    policies.append(
                        Policy(
                            client=self.client,
                            logger=self.logger,
                            name=policy["PolicyName"],
                            arn=policy["Arn"],
                        )
                    )
        except ClientError as e:
            raise ListError(
                f"Listing IAM policies: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return policies


# =============================================================================
# Roles
# =============================================================================


@dataclass(frozen=True)
class Role:
    """An IAM role, detached from everything before deletion."""

    resource_type: ClassVar[str] = "IAM Role"

    client: Any = field(repr=False, compare=False)
    logger: Logger = field(repr=False, compare=False)
    name: str

    def delete(self) -> None:
        self._cleanup(
            "list_role_policies",
            "PolicyNames",
            lambda policy_name: self.client.delete_role_policy(
                RoleName=self.name, PolicyName=policy_name
            ),
            "Delete inline policy",
        )
        self._cleanup(
            "list_attached_role_policies",
            "AttachedPolicies",
            lambda attached: self.client.detach_role_policy(
                RoleName=self.name, PolicyArn=attached["PolicyArn"]
            ),
            "Detach policy",
        )
        self._cleanup(
            "list_instance_profiles_for_role",
            "InstanceProfiles",
            lambda profile: self.client.remove_role_from_instance_profile(
                RoleName=self.name,
                InstanceProfileName=profile["InstanceProfileName"],
            ),
            "Remove from instance profile",
        )

        try:
            self.client.delete_role(RoleName=self.name)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)

    def _cleanup(self, list_method: str, key: str, action, description: str) -> None:
        try:
            response = getattr(self.client, list_method)(RoleName=self.name)
        except ClientError as e:
            self.logger.printf(
                "[WARNING] %s for %s %s: %s",
                description,
                self.resource_type,
                self.name,
                error_message(e),
                style="yellow",
            )
            return

        for item in response.get(key, []):
            try:
                action(item)
            except ClientError as e:
                self.logger.printf(
                    "[WARNING] %s for %s %s: %s",
                    description,
                    self.resource_type,
                    self.name,
                    error_message(e),
                    style="yellow",
                )


class Roles(BaseLister):
    """Lists IAM roles, excluding AWS service-linked roles."""

    resource_type = "IAM Role"

    def get_all_resources(self) -> List[Deletable]:
        roles: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("list_roles")
            for page in paginator.paginate():
                for role in page.get("Roles", []):
                    if role.get("Path", "/").startswith("/aws-service-role/"):
                        continue
                    roles.append(
                        Role(client=self.client, logger=self.logger, name=role["RoleName"])
                    )
        except ClientError as e:
            raise ListError(
                f"Listing IAM roles: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return roles


# =============================================================================
# Server Certificates
# =============================================================================


@dataclass(frozen=True)
class ServerCertificate:
    resource_type: ClassVar[str] = "IAM Server Certificate"

    client: Any = field(repr=False, compare=False)
    name: str

    def delete(self) -> None:
        try:
            self.client.delete_server_certificate(ServerCertificateName=self.name)
        except ClientError as e:
            if is_not_found(e):
                return
            raise _delete_error(self, e)


class ServerCertificates(BaseLister):
    resource_type = "IAM Server Certificate"

    def get_all_resources(self) -> List[Deletable]:
        certificates: List[Deletable] = []
        try:
            paginator = self.client.get_paginator("list_server_certificates")
            for page in paginator.paginate():
                for metadata in page.get("ServerCertificateMetadataList", []):
                    certificates.append(
                        ServerCertificate(
                            client=self.client,
                            name=metadata["ServerCertificateName"],
                        )
                    )
        except ClientError as e:
            raise ListError(
                f"Listing server certificates: {error_message(e)}",
                resource_type=self.resource_type,
            )
        return certificates
