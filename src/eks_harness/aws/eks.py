"""EKS cluster lookups.

This module provides the EKSClusterManager class for reading cluster
details with DescribeCluster and for waiting until a freshly applied
cluster reaches the expected status.
"""

import logging
import time
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from ..core.aws_client import AWSClientManager


logger = logging.getLogger(__name__)


class EKSError(Exception):
    """Base exception for EKS lookups."""
    pass


class ClusterNotFoundError(EKSError):
    """Raised when the named cluster does not exist in the region."""
    pass


class EKSClusterManager:
    """Reads EKS cluster state for a region."""

    # Cluster creation usually completes within 15 minutes
    DEFAULT_WAIT_TIMEOUT_SECONDS = 1200

    POLLING_INTERVAL_SECONDS = 30

    def __init__(self, aws_client: AWSClientManager) -> None:
        """Initialize the cluster manager.

        Args:
            aws_client: AWS client manager instance
        """
        self.aws_client = aws_client

    def get_cluster(self, region: str, cluster_name: str) -> Dict[str, Any]:
        """Describe a cluster.

        Args:
            region: AWS region of the cluster
            cluster_name: EKS cluster name

        Returns:
            The ``cluster`` structure returned by DescribeCluster

        Raises:
            ClusterNotFoundError: When the cluster does not exist
            EKSError: When the API call fails for any other reason
        """
        eks_client = self.aws_client.get_client("eks", region)

        try:
            response = eks_client.describe_cluster(name=cluster_name)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_message = e.response["Error"].get("Message", str(e))
            if error_code == "ResourceNotFoundException":
                raise ClusterNotFoundError(
                    f"EKS cluster '{cluster_name}' not found in {region}"
                )
            elif error_code == "AccessDeniedException":
                raise EKSError(
                    f"Insufficient permissions to describe cluster '{cluster_name}': {error_message}"
                )
            raise EKSError(f"Failed to describe cluster '{cluster_name}': {error_message}")

        return response["cluster"]

    def get_cluster_status(self, region: str, cluster_name: str) -> str:
        return self.get_cluster(region, cluster_name).get("status", "UNKNOWN")

    def wait_for_cluster_status(
        self,
        region: str,
        cluster_name: str,
        expected_status: str = "ACTIVE",
        timeout_seconds: Optional[int] = None,
        interval_seconds: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Poll the cluster until it reaches expected_status.

        Args:
            region: AWS region of the cluster
            cluster_name: EKS cluster name
            expected_status: Status to wait for
            timeout_seconds: Maximum wait time (default: 20 minutes)
            interval_seconds: Delay between polls (default: 30 seconds)

        Returns:
            Cluster description once the status is reached

        Raises:
            EKSError: When the cluster enters FAILED or the wait times out
        """
        if timeout_seconds is None:
            timeout_seconds = self.DEFAULT_WAIT_TIMEOUT_SECONDS
        if interval_seconds is None:
            interval_seconds = self.POLLING_INTERVAL_SECONDS

        start_time = time.time()

        while True:
            cluster = self.get_cluster(region, cluster_name)
            status = cluster.get("status")
            elapsed = int(time.time() - start_time)

            if status == expected_status:
                logger.info(f"Cluster {cluster_name} is {status} after {elapsed}s")
                return cluster
            if status == "FAILED":
                raise EKSError(f"Cluster {cluster_name} entered FAILED status")

            if elapsed >= timeout_seconds:
                raise EKSError(
                    f"Timed out after {timeout_seconds}s waiting for cluster "
                    f"{cluster_name} to become {expected_status} (last status: {status})"
                )

            logger.info(f"Cluster {cluster_name} is {status}, waiting for {expected_status}")
            time.sleep(interval_seconds)
