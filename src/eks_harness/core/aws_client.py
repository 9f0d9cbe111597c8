"""Shared boto3 session and client cache for infrastructure lookups.

Every AWS call made while verifying a Terraform deployment goes through
one AWSClientManager so that the same credentials, profile and region are
used for the EKS and EC2 lookups that follow an apply.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.exceptions import (
    ClientError,
    NoCredentialsError,
    ProfileNotFound,
)


logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


class AWSClientManager:
    """Caches one boto3 client per service and region.

    Credentials are checked with STS when the manager is created so that a
    misconfigured environment fails before Terraform creates anything.
    """

    def __init__(
        self,
        profile_name: Optional[str] = None,
        region_name: Optional[str] = None,
    ) -> None:
        """Initialize AWS client manager.

        Args:
            profile_name: Optional AWS profile name for credentials
            region_name: Region used when a caller does not pass one

        Raises:
            NoCredentialsError: When AWS credentials are not available
            ProfileNotFound: When specified profile doesn't exist
        """
        self._session: Optional[boto3.Session] = None
        self._clients: Dict[Tuple[str, str], Any] = {}
        self._profile_name = profile_name
        self._region_name = region_name
        self._identity: Optional[Dict[str, Any]] = None
        self._validate_credentials()

    def _validate_credentials(self) -> None:
        """Fetch the caller identity once to prove the credentials work.

        Raises:
            NoCredentialsError: When AWS credentials are not available
            ProfileNotFound: When specified profile doesn't exist
        """
        try:
            session = self._get_session()
            sts_client = session.client("sts")
            self._identity = sts_client.get_caller_identity()
        except NoCredentialsError:
            raise NoCredentialsError()
        except ProfileNotFound:
            raise ProfileNotFound(profile=self._profile_name)
        except ClientError as e:
            if e.response["Error"]["Code"] in (
                "InvalidClientTokenId",
                "ExpiredToken",
            ):
                logger.error(
                    "AWS credentials are invalid or expired. "
                    "Please update your credentials."
                )
                raise NoCredentialsError() from e
            raise

        logger.debug(
            "Using AWS identity %s", (self._identity or {}).get("Arn")
        )

    def _get_session(self) -> boto3.Session:
        """Get or create the boto3 session."""
        if self._session is None:
            if self._profile_name:
                self._session = boto3.Session(profile_name=self._profile_name)
            else:
                self._session = boto3.Session()
        return self._session

    @property
    def profile_name(self) -> Optional[str]:
        return self._profile_name

    def get_client(self, service_name: str, region_name: Optional[str] = None):
        """Get AWS service client for a region.

        Args:
            service_name: AWS service name (e.g., 'eks', 'ec2')
            region_name: AWS region name, defaults to the current region

        Returns:
            Cached boto3 client for the service and region
        """
        region = region_name or self.get_current_region()
        client_key = (service_name, region)

        if client_key not in self._clients:
            session = self._get_session()
            self._clients[client_key] = session.client(
                service_name, region_name=region
            )

        return self._clients[client_key]

    def get_current_region(self) -> str:
        """Region pinned on the manager, else the session's, else us-east-1."""
        if self._region_name:
            return self._region_name
        session = self._get_session()
        return session.region_name or DEFAULT_REGION

    def set_region(self, region_name: str) -> None:
        """Pin the default region used by get_client."""
        self._region_name = region_name

    def get_account_id(self) -> str:
        """Get current AWS account ID.

        Raises:
            ClientError: When unable to get account information
        """
        if self._identity is None:
            sts_client = self.get_client("sts")
            self._identity = sts_client.get_caller_identity()
        return self._identity["Account"]

    def clear_cache(self) -> None:
        """Clear cached clients to force recreation."""
        self._clients.clear()
