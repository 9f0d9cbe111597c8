"""VPC lookups.

Reads a VPC and its subnets so a deployment can prove the network the
Terraform module reported actually exists.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from botocore.exceptions import ClientError

from ..core.aws_client import AWSClientManager


logger = logging.getLogger(__name__)


class VpcError(Exception):
    """Base exception for VPC lookups."""
    pass


class VpcNotFoundError(VpcError):
    """Raised when the VPC id does not exist in the region."""
    pass


@dataclass
class Subnet:
    """A subnet inside a VPC."""

    id: str
    availability_zone: str
    cidr_block: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class Vpc:
    """A VPC with its subnets."""

    id: str
    name: Optional[str] = None
    cidr_block: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    subnets: List[Subnet] = field(default_factory=list)


def tags_to_dict(tags: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Convert the EC2 [{'Key': k, 'Value': v}] tag list to a dict."""
    return {tag["Key"]: tag.get("Value", "") for tag in tags or []}


class VpcManager:
    """Reads VPCs and subnets through the EC2 API."""

    def __init__(self, aws_client: AWSClientManager) -> None:
        self.aws_client = aws_client

    def get_vpc_by_id(self, region: str, vpc_id: str) -> Vpc:
        """Fetch a VPC and its subnets.

        Args:
            region: AWS region of the VPC
            vpc_id: VPC id (vpc-...)

        Returns:
            Vpc with subnets populated

        Raises:
            VpcNotFoundError: When the VPC does not exist
            VpcError: When the API call fails
        """
        ec2_client = self.aws_client.get_client("ec2", region)

        try:
            response = ec2_client.describe_vpcs(
                Filters=[{"Name": "vpc-id", "Values": [vpc_id]}]
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "InvalidVpcID.NotFound":
                raise VpcNotFoundError(f"VPC {vpc_id} not found in {region}")
            raise VpcError(f"Failed to describe VPC {vpc_id}: {e}")

        vpcs = response.get("Vpcs", [])
        if not vpcs:
            raise VpcNotFoundError(f"VPC {vpc_id} not found in {region}")

        raw_vpc = vpcs[0]
        tags = tags_to_dict(raw_vpc.get("Tags"))

        return Vpc(
            id=raw_vpc["VpcId"],
            name=tags.get("Name"),
            cidr_block=raw_vpc.get("CidrBlock"),
            tags=tags,
            subnets=self.get_subnets_for_vpc(region, vpc_id),
        )

    def get_subnets_for_vpc(self, region: str, vpc_id: str) -> List[Subnet]:
        """All subnets of a VPC, following DescribeSubnets pagination.

        Raises:
            VpcError: When the API call fails
        """
        ec2_client = self.aws_client.get_client("ec2", region)
        subnets = []

        try:
            paginator = ec2_client.get_paginator("describe_subnets")
            for page in paginator.paginate(
                Filters=[{"Name": "vpc-id", "Values": [vpc_id]}]
            ):
                for raw_subnet in page.get("Subnets", []):
                    subnets.append(
                        Subnet(
                            id=raw_subnet["SubnetId"],
                            availability_zone=raw_subnet.get("AvailabilityZone", ""),
                            cidr_block=raw_subnet.get("CidrBlock"),
                            tags=tags_to_dict(raw_subnet.get("Tags")),
                        )
                    )
        except ClientError as e:
            raise VpcError(f"Failed to list subnets for VPC {vpc_id}: {e}")

        logger.debug(f"Found {len(subnets)} subnets in {vpc_id}")
        return subnets
