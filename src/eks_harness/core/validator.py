"""Validation framework for provisioned infrastructure.

Validators inspect a deployment (or the environment before one) and
report a ValidationResult instead of raising, so that a run can show
every failed check together with remediation steps.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from botocore.exceptions import NoCredentialsError

from .aws_client import AWSClientManager


logger = logging.getLogger(__name__)


class ValidationStatus(Enum):
    """Validation result status."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    WARNING = "WARNING"
    SKIPPED = "SKIPPED"


@dataclass
class ValidationResult:
    """Result of a validation check."""

    validator_name: str
    status: ValidationStatus
    message: str
    remediation_steps: Optional[List[str]] = None
    details: Optional[Dict[str, Any]] = None

    @property
    def failed(self) -> bool:
        return self.status == ValidationStatus.FAILED


class BaseValidator(ABC):
    """Base class for all validators."""

    def __init__(self, aws_client: AWSClientManager) -> None:
        """Initialize validator with AWS client manager.

        Args:
            aws_client: Configured AWS client manager
        """
        self.aws_client = aws_client

    @abstractmethod
    def validate(self) -> ValidationResult:
        """Perform validation check.

        Returns:
            ValidationResult with status and details
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Get validator name."""
        pass


class CredentialsValidator(BaseValidator):
    """Validates AWS credentials before anything is provisioned."""

    @property
    def name(self) -> str:
        return "AWS Credentials"

    def validate(self) -> ValidationResult:
        try:
            account_id = self.aws_client.get_account_id()
            region = self.aws_client.get_current_region()

            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.PASSED,
                message=f"AWS credentials valid for account {account_id} in region {region}",
                details={"account_id": account_id, "region": region},
            )

        except NoCredentialsError as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=str(e),
                remediation_steps=[
                    "Configure AWS credentials using one of these methods:",
                    "1. AWS CLI: Run 'aws configure'",
                    "2. Environment variables: Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY",
                    "3. AWS profiles: Set AWS_PROFILE environment variable",
                ],
            )
        except Exception as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"Credential validation failed: {str(e)}",
                remediation_steps=[
                    "Check AWS credential configuration",
                    "Verify IAM permissions for STS GetCallerIdentity",
                ],
            )


def run_validators(validators: List[BaseValidator]) -> List[ValidationResult]:
    """Run validators in order, turning unexpected errors into failures.

    Args:
        validators: Validators to run

    Returns:
        One ValidationResult per validator
    """
    results = []

    for validator in validators:
        try:
            result = validator.validate()
        except Exception as e:
            logger.error(f"Validator {validator.name} raised: {e}")
            result = ValidationResult(
                validator_name=validator.name,
                status=ValidationStatus.FAILED,
                message=f"Validation error: {str(e)}",
                remediation_steps=[
                    "Check validator implementation",
                    "Verify AWS service availability",
                ],
            )
        logger.info(f"{result.validator_name}: {result.status.value} - {result.message}")
        results.append(result)

    return results


def all_passed(results: List[ValidationResult]) -> bool:
    """True when no result has FAILED status."""
    return not any(result.failed for result in results)
