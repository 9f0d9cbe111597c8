"""Unit tests for EKS cluster lookups."""

import pytest
from unittest.mock import Mock, patch
from botocore.exceptions import ClientError

from eks_harness.aws.eks import ClusterNotFoundError, EKSClusterManager, EKSError


def _client_error(code, operation="DescribeCluster"):
    return ClientError({"Error": {"Code": code, "Message": f"{code} message"}}, operation)


@pytest.fixture
def mock_eks_client():
    return Mock()


@pytest.fixture
def manager(mock_aws_client, mock_eks_client):
    mock_aws_client.get_client.return_value = mock_eks_client
    return EKSClusterManager(mock_aws_client)


class TestEKSClusterManager:

    def test_get_cluster(self, manager, mock_aws_client, mock_eks_client):
        mock_eks_client.describe_cluster.return_value = {
            "cluster": {"name": "test-eks-cluster", "status": "ACTIVE", "version": "1.29"}
        }

        cluster = manager.get_cluster("us-east-1", "test-eks-cluster")

        assert cluster["status"] == "ACTIVE"
        mock_aws_client.get_client.assert_called_with("eks", "us-east-1")
        mock_eks_client.describe_cluster.assert_called_once_with(name="test-eks-cluster")

    def test_get_cluster_not_found(self, manager, mock_eks_client):
        mock_eks_client.describe_cluster.side_effect = _client_error("ResourceNotFoundException")

        with pytest.raises(ClusterNotFoundError) as exc_info:
            manager.get_cluster("us-east-1", "missing")

        assert "missing" in str(exc_info.value)

    def test_get_cluster_access_denied(self, manager, mock_eks_client):
        mock_eks_client.describe_cluster.side_effect = _client_error("AccessDeniedException")

        with pytest.raises(EKSError) as exc_info:
            manager.get_cluster("us-east-1", "test-eks-cluster")

        assert "Insufficient permissions" in str(exc_info.value)

    def test_get_cluster_status(self, manager, mock_eks_client):
        mock_eks_client.describe_cluster.return_value = {"cluster": {"status": "CREATING"}}

        assert manager.get_cluster_status("us-east-1", "test-eks-cluster") == "CREATING"

    @patch("eks_harness.aws.eks.time.sleep")
    def test_wait_for_cluster_status(self, mock_sleep, manager, mock_eks_client):
        mock_eks_client.describe_cluster.side_effect = [
            {"cluster": {"status": "CREATING"}},
            {"cluster": {"status": "CREATING"}},
            {"cluster": {"status": "ACTIVE", "name": "test-eks-cluster"}},
        ]

        cluster = manager.wait_for_cluster_status(
            "us-east-1", "test-eks-cluster", timeout_seconds=600, interval_seconds=10
        )

        assert cluster["status"] == "ACTIVE"
        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(10)

    @patch("eks_harness.aws.eks.time.sleep")
    def test_wait_for_cluster_failed(self, mock_sleep, manager, mock_eks_client):
        mock_eks_client.describe_cluster.return_value = {"cluster": {"status": "FAILED"}}

        with pytest.raises(EKSError) as exc_info:
            manager.wait_for_cluster_status("us-east-1", "test-eks-cluster")

        assert "FAILED" in str(exc_info.value)
        mock_sleep.assert_not_called()

    @patch("eks_harness.aws.eks.time.sleep")
    def test_wait_for_cluster_timeout(self, mock_sleep, manager, mock_eks_client):
        mock_eks_client.describe_cluster.return_value = {"cluster": {"status": "CREATING"}}

        with pytest.raises(EKSError) as exc_info:
            manager.wait_for_cluster_status("us-east-1", "test-eks-cluster", timeout_seconds=0)

        assert "Timed out" in str(exc_info.value)
        mock_sleep.assert_not_called()
