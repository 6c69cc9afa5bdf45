"""
AWS Client Module
=================

Creates the boto3 session and the EC2, IAM and STS clients the listers
use, and checks the credentials before anything is listed.

Classes
-------
AWSClient
    Session and service client factory.

Example
-------
>>> from leftovers.core.aws_client import AWSClient
>>>
>>> client = AWSClient(region="us-east-1", profile="ci")
>>> account_id = client.get_account_id()
>>> ec2 = client.get_ec2_client()

Notes
-----
Credentials come from, in order: explicit access keys, the named
profile, then boto3's default chain (environment, config files, IAM role).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, NoCredentialsError, ProfileNotFound

from leftovers.core.exceptions import AWSClientError, CredentialsError

# Module logger
logger = logging.getLogger(__name__)

# Adaptive mode also rate-limits each client while many deletes share it.
CLIENT_CONFIG = Config(retries={"max_attempts": 5, "mode": "adaptive"})

INVALID_CREDENTIAL_CODES = ("InvalidClientTokenId", "SignatureDoesNotMatch")


class AWSClient:
    """
    Lazily created boto3 session with cached service clients.

    Parameters
    ----------
    region : str, default="us-east-1"
        AWS region to delete from.
    profile : str, optional
        AWS profile name from ~/.aws/credentials.
    access_key_id : str, optional
        Explicit access key. Takes precedence over ``profile``.
    secret_access_key : str, optional
        Secret for ``access_key_id``.
    session_token : str, optional
        Session token for temporary credentials.

    Raises
    ------
    CredentialsError
        On first use, if the credentials are incomplete, missing, or name
        an unknown profile.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session_token: Optional[str] = None,
    ) -> None:
        self.region = region
        self.profile = profile
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.session_token = session_token

        self._session: Optional[boto3.Session] = None
        self._clients: dict[str, Any] = {}

    @property
    def session(self) -> boto3.Session:
        """The boto3 session, created on first access."""
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> boto3.Session:
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise CredentialsError(
                "Both an access key ID and a secret access key are required",
                details={"hint": "Set both or neither of the access key options"},
            )

        session_kwargs: dict[str, Any] = {"region_name": self.region}
        if self.access_key_id:
            session_kwargs["aws_access_key_id"] = self.access_key_id
            session_kwargs["aws_secret_access_key"] = self.secret_access_key
            session_kwargs["aws_session_token"] = self.session_token
        elif self.profile:
            session_kwargs["profile_name"] = self.profile

        try:
            session = boto3.Session(**session_kwargs)
        except ProfileNotFound:
            raise self._profile_not_found()

        logger.debug(f"Created boto3 session for region {self.region}")
        return session

    def _profile_not_found(self) -> CredentialsError:
        return CredentialsError(
            f"AWS profile '{self.profile}' not found",
            details={
                "profile": self.profile,
                "hint": "Check ~/.aws/credentials for available profiles",
            },
        )

    def _get_client(self, service_name: str) -> Any:
        """
        Return the cached client for ``service_name``, creating it if needed.

        Raises
        ------
        CredentialsError
            If no credentials are found or the profile does not exist.
        """
        if service_name not in self._clients:
            try:
                self._clients[service_name] = self.session.client(
                    service_name, config=CLIENT_CONFIG
                )
            except NoCredentialsError:
                raise CredentialsError(
                    "AWS credentials not found",
                    details={
                        "hint": (
                            "Configure credentials using 'aws configure' or set "
                            "BBL_AWS_ACCESS_KEY_ID and BBL_AWS_SECRET_ACCESS_KEY"
                        ),
                    },
                )
            except ProfileNotFound:
                raise self._profile_not_found()
            logger.debug(f"Created {service_name} client for {self.region}")
        return self._clients[service_name]

    def get_ec2_client(self) -> Any:
        return self._get_client("ec2")

    def get_iam_client(self) -> Any:
        return self._get_client("iam")

    def get_account_id(self) -> str:
        """
        Return the account the credentials belong to.

        Calling STS GetCallerIdentity also proves the credentials work, so
        this doubles as the credential check before listing.

        Raises
        ------
        CredentialsError
            If the credentials are missing, invalid or expired.
        AWSClientError
            If STS fails for another reason.
        """
        try:
            identity = self._get_client("sts").get_caller_identity()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in INVALID_CREDENTIAL_CODES or error_code == "ExpiredToken":
                raise CredentialsError(
                    "Invalid AWS credentials",
                    details={
                        "error_code": error_code,
                        "hint": "Check your access key and secret key",
                    },
                )
            raise AWSClientError(
                f"Failed to validate credentials: {e}", service="sts", region=self.region
            )

        logger.info(f"Credentials validated for {identity['Arn']}")
        return identity["Account"]

    def __repr__(self) -> str:
        return f"AWSClient(region='{self.region}', profile={self.profile!r})"


__all__ = ["AWSClient", "AWSClientError"]
