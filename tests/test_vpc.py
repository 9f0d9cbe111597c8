"""Unit tests for VPC lookups."""

import pytest
from unittest.mock import Mock
from botocore.exceptions import ClientError

from eks_harness.aws.vpc import VpcError, VpcManager, VpcNotFoundError, tags_to_dict


@pytest.fixture
def mock_ec2_client():
    client = Mock()
    paginator = Mock()
    paginator.paginate.return_value = [
        {"Subnets": [
            {"SubnetId": "subnet-a", "AvailabilityZone": "us-east-1a", "CidrBlock": "10.0.0.0/20"},
        ]},
        {"Subnets": [
            {"SubnetId": "subnet-b", "AvailabilityZone": "us-east-1b", "CidrBlock": "10.0.16.0/20",
             "Tags": [{"Key": "kubernetes.io/role/internal-elb", "Value": "1"}]},
        ]},
    ]
    client.get_paginator.return_value = paginator
    return client


@pytest.fixture
def manager(mock_aws_client, mock_ec2_client):
    mock_aws_client.get_client.return_value = mock_ec2_client
    return VpcManager(mock_aws_client)


class TestVpcManager:

    def test_get_vpc_by_id(self, manager, mock_aws_client, mock_ec2_client):
        mock_ec2_client.describe_vpcs.return_value = {
            "Vpcs": [{
                "VpcId": "vpc-0123",
                "CidrBlock": "10.0.0.0/16",
                "Tags": [{"Key": "Name", "Value": "test-eks-cluster-vpc"}],
            }]
        }

        vpc = manager.get_vpc_by_id("us-east-1", "vpc-0123")

        assert vpc.id == "vpc-0123"
        assert vpc.name == "test-eks-cluster-vpc"
        assert vpc.cidr_block == "10.0.0.0/16"
        assert [s.id for s in vpc.subnets] == ["subnet-a", "subnet-b"]
        assert vpc.subnets[1].tags == {"kubernetes.io/role/internal-elb": "1"}
        mock_aws_client.get_client.assert_called_with("ec2", "us-east-1")
        mock_ec2_client.describe_vpcs.assert_called_once_with(
            Filters=[{"Name": "vpc-id", "Values": ["vpc-0123"]}]
        )

    def test_get_vpc_empty_result(self, manager, mock_ec2_client):
        mock_ec2_client.describe_vpcs.return_value = {"Vpcs": []}

        with pytest.raises(VpcNotFoundError):
            manager.get_vpc_by_id("us-east-1", "vpc-missing")

    def test_get_vpc_not_found_error_code(self, manager, mock_ec2_client):
        mock_ec2_client.describe_vpcs.side_effect = ClientError(
            {"Error": {"Code": "InvalidVpcID.NotFound", "Message": "nope"}}, "DescribeVpcs"
        )

        with pytest.raises(VpcNotFoundError):
            manager.get_vpc_by_id("us-east-1", "vpc-missing")

    def test_get_vpc_other_error(self, manager, mock_ec2_client):
        mock_ec2_client.describe_vpcs.side_effect = ClientError(
            {"Error": {"Code": "UnauthorizedOperation", "Message": "denied"}}, "DescribeVpcs"
        )

        with pytest.raises(VpcError) as exc_info:
            manager.get_vpc_by_id("us-east-1", "vpc-0123")

        assert not isinstance(exc_info.value, VpcNotFoundError)

    def test_tags_to_dict(self):
        assert tags_to_dict(None) == {}
        assert tags_to_dict([{"Key": "Name", "Value": "x"}]) == {"Name": "x"}
