"""
Pytest configuration and shared fixtures for testing.
"""

import io

import boto3
import pytest
from moto import mock_aws
from rich.console import Console

from leftovers.core.aws_client import AWSClient
from leftovers.core.logger import Logger


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    for name in (
        "AWS_PROFILE",
        "BBL_AWS_ACCESS_KEY_ID",
        "BBL_AWS_SECRET_ACCESS_KEY",
        "BBL_AWS_SESSION_TOKEN",
        "BBL_AWS_REGION",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_aws_environment(aws_credentials):
    """Create a mocked AWS environment."""
    with mock_aws():
        yield


@pytest.fixture
def aws_client(mock_aws_environment):
    """Create an AWSClient instance for testing."""
    return AWSClient(region="us-east-1")


@pytest.fixture
def ec2_client(mock_aws_environment):
    """Create a boto3 EC2 client for setting up test resources."""
    return boto3.client("ec2", region_name="us-east-1")


@pytest.fixture
def iam_client(mock_aws_environment):
    """Create a boto3 IAM client for setting up test resources."""
    return boto3.client("iam", region_name="us-east-1")


@pytest.fixture
def vpc(ec2_client):
    """Create a VPC for testing."""
    response = ec2_client.create_vpc(CidrBlock="10.0.0.0/16")
    vpc_id = response["Vpc"]["VpcId"]
    return vpc_id


@pytest.fixture
def subnet(ec2_client, vpc):
    """Create a subnet for testing."""
    response = ec2_client.create_subnet(
        VpcId=vpc,
        CidrBlock="10.0.1.0/24",
        AvailabilityZone="us-east-1a",
    )
    return response["Subnet"]["SubnetId"]


@pytest.fixture
def security_group(ec2_client, vpc):
    """Create a security group for testing."""
    response = ec2_client.create_security_group(
        GroupName="test-sg",
        Description="Test security group",
        VpcId=vpc,
    )
    return response["GroupId"]


@pytest.fixture
def image_id(ec2_client):
    """Return an AMI known to the mocked account."""
    images = ec2_client.describe_images(Owners=["amazon"])["Images"]
    return images[0]["ImageId"]


@pytest.fixture
def console():
    """Rich console writing to an in-memory buffer."""
    return Console(file=io.StringIO(), width=200, force_terminal=False)


@pytest.fixture
def logger(console):
    """Logger that never prompts."""
    return Logger(console=console, no_confirm=True)
