"""Unit tests for AWS Client Manager."""

import pytest
from unittest.mock import Mock, patch
from botocore.exceptions import ClientError, NoCredentialsError, ProfileNotFound

from eks_harness.core.aws_client import AWSClientManager


def _session_with_identity(region_name="us-west-2"):
    mock_session = Mock()
    mock_session.region_name = region_name
    mock_sts_client = Mock()
    mock_sts_client.get_caller_identity.return_value = {
        "Account": "123456789012",
        "Arn": "arn:aws:iam::123456789012:user/ci",
    }
    mock_session.client.return_value = mock_sts_client
    return mock_session, mock_sts_client


class TestAWSClientManager:
    """Test cases for AWSClientManager class."""

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_init_success(self, mock_session_class):
        """Credentials are checked once on construction."""
        mock_session, mock_sts_client = _session_with_identity()
        mock_session_class.return_value = mock_session

        manager = AWSClientManager()

        assert manager.profile_name is None
        mock_sts_client.get_caller_identity.assert_called_once()

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_init_with_profile(self, mock_session_class):
        mock_session, _ = _session_with_identity()
        mock_session_class.return_value = mock_session

        manager = AWSClientManager(profile_name="test-profile")

        assert manager.profile_name == "test-profile"
        mock_session_class.assert_called_with(profile_name="test-profile")

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_init_no_credentials(self, mock_session_class):
        mock_session, mock_sts_client = _session_with_identity()
        mock_sts_client.get_caller_identity.side_effect = NoCredentialsError()
        mock_session_class.return_value = mock_session

        with pytest.raises(NoCredentialsError):
            AWSClientManager()

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_init_profile_not_found(self, mock_session_class):
        mock_session_class.side_effect = ProfileNotFound(profile="invalid")

        with pytest.raises(ProfileNotFound):
            AWSClientManager(profile_name="invalid")

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_init_expired_token(self, mock_session_class):
        """Expired credentials surface as NoCredentialsError."""
        mock_session, mock_sts_client = _session_with_identity()
        mock_sts_client.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "ExpiredToken", "Message": "expired"}},
            "GetCallerIdentity",
        )
        mock_session_class.return_value = mock_session

        with pytest.raises(NoCredentialsError):
            AWSClientManager()

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_init_invalid_token_keeps_cause(self, mock_session_class):
        """Invalid credentials raise NoCredentialsError chained to the STS error."""
        mock_session, mock_sts_client = _session_with_identity()
        sts_error = ClientError(
            {"Error": {"Code": "InvalidClientTokenId", "Message": "bad token"}},
            "GetCallerIdentity",
        )
        mock_sts_client.get_caller_identity.side_effect = sts_error
        mock_session_class.return_value = mock_session

        with pytest.raises(NoCredentialsError) as exc_info:
            AWSClientManager()

        assert exc_info.value.__cause__ is sts_error

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_init_other_client_error_propagates(self, mock_session_class):
        mock_session, mock_sts_client = _session_with_identity()
        mock_sts_client.get_caller_identity.side_effect = ClientError(
            {"Error": {"Code": "Throttling", "Message": "slow down"}},
            "GetCallerIdentity",
        )
        mock_session_class.return_value = mock_session

        with pytest.raises(ClientError):
            AWSClientManager()

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_get_client_caching(self, mock_session_class):
        """One client per service and region."""
        mock_session, mock_sts_client = _session_with_identity()
        mock_eks_client = Mock()
        mock_other_region_client = Mock()

        def client_side_effect(service_name, region_name=None):
            if service_name == "sts":
                return mock_sts_client
            if region_name == "eu-west-1":
                return mock_other_region_client
            return mock_eks_client

        mock_session.client.side_effect = client_side_effect
        mock_session_class.return_value = mock_session

        manager = AWSClientManager()

        client1 = manager.get_client("eks", "us-east-1")
        client2 = manager.get_client("eks", "us-east-1")
        client3 = manager.get_client("eks", "eu-west-1")

        assert client1 is client2
        assert client1 is mock_eks_client
        assert client3 is mock_other_region_client

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_get_client_defaults_to_current_region(self, mock_session_class):
        mock_session, _ = _session_with_identity(region_name="ap-southeast-2")
        mock_session_class.return_value = mock_session

        manager = AWSClientManager()
        manager.get_client("ec2")

        mock_session.client.assert_called_with("ec2", region_name="ap-southeast-2")

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_get_current_region(self, mock_session_class):
        mock_session, _ = _session_with_identity(region_name="us-west-2")
        mock_session_class.return_value = mock_session

        manager = AWSClientManager()

        assert manager.get_current_region() == "us-west-2"

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_get_current_region_default(self, mock_session_class):
        mock_session, _ = _session_with_identity(region_name=None)
        mock_session_class.return_value = mock_session

        manager = AWSClientManager()

        assert manager.get_current_region() == "us-east-1"

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_pinned_region_wins(self, mock_session_class):
        mock_session, _ = _session_with_identity(region_name="us-west-2")
        mock_session_class.return_value = mock_session

        manager = AWSClientManager(region_name="eu-central-1")
        assert manager.get_current_region() == "eu-central-1"

        manager.set_region("sa-east-1")
        assert manager.get_current_region() == "sa-east-1"

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_get_account_id(self, mock_session_class):
        """Account id comes from the identity fetched at construction."""
        mock_session, mock_sts_client = _session_with_identity()
        mock_session_class.return_value = mock_session

        manager = AWSClientManager()

        assert manager.get_account_id() == "123456789012"
        mock_sts_client.get_caller_identity.assert_called_once()

    @patch("eks_harness.core.aws_client.boto3.Session")
    def test_clear_cache(self, mock_session_class):
        mock_session, _ = _session_with_identity()
        mock_session_class.return_value = mock_session

        manager = AWSClientManager()
        manager.get_client("ec2", "us-east-1")
        assert len(manager._clients) == 1

        manager.clear_cache()
        assert len(manager._clients) == 0
