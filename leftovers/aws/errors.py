"""Helpers for turning botocore errors into short messages."""

from __future__ import annotations

from botocore.exceptions import ClientError

# Error codes meaning the resource is already gone
NOT_FOUND_CODES = {
    "InvalidInstanceID.NotFound",
    "InvalidGroup.NotFound",
    "InvalidVolume.NotFound",
    "InvalidKeyPair.NotFound",
    "InvalidAllocationID.NotFound",
    "InvalidSubnetID.NotFound",
    "InvalidVpcID.NotFound",
    "NoSuchEntity",
}


def error_code(error: BaseException) -> str:
    """Return the AWS error code of ``error``, or ``'Unknown'``."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "Unknown")
    return "Unknown"


def error_message(error: BaseException) -> str:
    """Return ``'<Code>: <Message>'`` for client errors, ``str(error)`` otherwise."""
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        return f"{details.get('Code', 'Unknown')}: {details.get('Message', str(error))}"
    return str(error)


def is_not_found(error: BaseException) -> bool:
    return error_code(error) in NOT_FOUND_CODES
