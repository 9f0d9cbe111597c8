"""Post-apply validators for the EKS module.

Each validator checks one property of a deployment: that the module
returned its outputs, that the cluster is live with the expected name,
version and status, and that the reported VPC exists.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..aws.eks import ClusterNotFoundError, EKSClusterManager, EKSError
from ..aws.vpc import VpcError, VpcManager, VpcNotFoundError
from ..core.aws_client import AWSClientManager
from ..core.validator import BaseValidator, ValidationResult, ValidationStatus


CLUSTER_ID_OUTPUT = "cluster_id"
CLUSTER_ENDPOINT_OUTPUT = "cluster_endpoint"
VPC_ID_OUTPUT = "vpc_id"

DEFAULT_REQUIRED_OUTPUTS = [CLUSTER_ID_OUTPUT, CLUSTER_ENDPOINT_OUTPUT, VPC_ID_OUTPUT]


@dataclass
class DeploymentOutputs:
    """Outputs read back from the module after apply."""

    region: str
    values: Dict[str, str] = field(default_factory=dict)

    @property
    def cluster_id(self) -> str:
        return self.values.get(CLUSTER_ID_OUTPUT, "")

    @property
    def cluster_endpoint(self) -> str:
        return self.values.get(CLUSTER_ENDPOINT_OUTPUT, "")

    @property
    def vpc_id(self) -> str:
        return self.values.get(VPC_ID_OUTPUT, "")


class DeploymentValidator(BaseValidator):
    """Base class for validators that inspect a deployment."""

    def __init__(self, aws_client: AWSClientManager, outputs: DeploymentOutputs) -> None:
        super().__init__(aws_client)
        self.outputs = outputs

    def _skipped(self, message: str) -> ValidationResult:
        return ValidationResult(
            validator_name=self.name,
            status=ValidationStatus.SKIPPED,
            message=message,
        )


class OutputsValidator(DeploymentValidator):
    """Every required output is present and non-empty."""

    def __init__(
        self,
        aws_client: AWSClientManager,
        outputs: DeploymentOutputs,
        required_outputs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(aws_client, outputs)
        self.required_outputs = list(required_outputs or DEFAULT_REQUIRED_OUTPUTS)

    @property
    def name(self) -> str:
        return "Module Outputs"

    def validate(self) -> ValidationResult:
        empty = [key for key in self.required_outputs if not self.outputs.values.get(key)]

        if empty:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"Outputs should not be empty: {', '.join(empty)}",
                details={"empty_outputs": empty},
                remediation_steps=[
                    "Check that the module declares the outputs: "
                    + ", ".join(empty),
                    "Run 'terraform output' in the module directory",
                ],
            )

        return ValidationResult(
            validator_name=self.name,
            status=ValidationStatus.PASSED,
            message=f"All {len(self.required_outputs)} required outputs are set",
            details={key: self.outputs.values[key] for key in self.required_outputs},
        )


class ClusterStatusValidator(DeploymentValidator):
    """The cluster named by cluster_id exists and has the expected status."""

    def __init__(
        self,
        aws_client: AWSClientManager,
        outputs: DeploymentOutputs,
        expected_status: str = "ACTIVE",
        wait_timeout: int = 0,
    ) -> None:
        super().__init__(aws_client, outputs)
        self.expected_status = expected_status
        self.wait_timeout = wait_timeout
        self.cluster_manager = EKSClusterManager(aws_client)

    @property
    def name(self) -> str:
        return "EKS Cluster Status"

    def validate(self) -> ValidationResult:
        cluster_id = self.outputs.cluster_id
        if not cluster_id:
            return self._skipped("No cluster_id output to look up")

        try:
            if self.wait_timeout:
                cluster = self.cluster_manager.wait_for_cluster_status(
                    self.outputs.region,
                    cluster_id,
                    self.expected_status,
                    timeout_seconds=self.wait_timeout,
                )
            else:
                cluster = self.cluster_manager.get_cluster(self.outputs.region, cluster_id)
        except ClusterNotFoundError as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=str(e),
                remediation_steps=[
                    f"Confirm the module created the cluster in {self.outputs.region}",
                    "Check that cluster_id outputs the cluster name",
                ],
            )
        except EKSError as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"Cluster lookup failed: {e}",
                remediation_steps=["Verify IAM permissions for eks:DescribeCluster"],
            )

        status = cluster.get("status")
        details = {
            "cluster_name": cluster.get("name", cluster_id),
            "status": status,
            "arn": cluster.get("arn"),
            "version": cluster.get("version"),
        }

        if status != self.expected_status:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"EKS cluster should be {self.expected_status}, found {status}",
                details=details,
                remediation_steps=[
                    "Inspect the cluster in the EKS console",
                    "Re-run with cluster.wait_timeout set to wait for provisioning",
                ],
            )

        return ValidationResult(
            validator_name=self.name,
            status=ValidationStatus.PASSED,
            message=f"EKS cluster {cluster_id} is {status}",
            details=details,
        )


class ClusterNameValidator(DeploymentValidator):
    """cluster_id contains the cluster name passed to the module."""

    def __init__(
        self, aws_client: AWSClientManager, outputs: DeploymentOutputs, expected_name: str
    ) -> None:
        super().__init__(aws_client, outputs)
        self.expected_name = expected_name

    @property
    def name(self) -> str:
        return "EKS Cluster Name"

    def validate(self) -> ValidationResult:
        cluster_id = self.outputs.cluster_id
        if self.expected_name in cluster_id:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.PASSED,
                message=f"Cluster ID {cluster_id} contains {self.expected_name}",
            )

        return ValidationResult(
            validator_name=self.name,
            status=ValidationStatus.FAILED,
            message=f"Cluster ID '{cluster_id}' should contain '{self.expected_name}'",
            details={"cluster_id": cluster_id, "expected_name": self.expected_name},
            remediation_steps=["Check that the module passes cluster_name through to the cluster"],
        )


class ClusterVersionValidator(DeploymentValidator):
    """The live cluster runs the Kubernetes version requested."""

    def __init__(
        self, aws_client: AWSClientManager, outputs: DeploymentOutputs, expected_version: str
    ) -> None:
        super().__init__(aws_client, outputs)
        self.expected_version = str(expected_version)
        self.cluster_manager = EKSClusterManager(aws_client)

    @property
    def name(self) -> str:
        return "EKS Cluster Version"

    def validate(self) -> ValidationResult:
        cluster_id = self.outputs.cluster_id
        if not cluster_id:
            return self._skipped("No cluster_id output to look up")

        try:
            cluster = self.cluster_manager.get_cluster(self.outputs.region, cluster_id)
        except EKSError as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"Cluster lookup failed: {e}",
            )

        version = cluster.get("version")
        if version != self.expected_version:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"Cluster version should be {self.expected_version}, found {version}",
                details={"version": version, "expected_version": self.expected_version},
                remediation_steps=["Check that the module passes cluster_version through to the cluster"],
            )

        return ValidationResult(
            validator_name=self.name,
            status=ValidationStatus.PASSED,
            message=f"Cluster runs Kubernetes {version}",
        )


class VpcValidator(DeploymentValidator):
    """The VPC named by vpc_id exists."""

    def __init__(self, aws_client: AWSClientManager, outputs: DeploymentOutputs) -> None:
        super().__init__(aws_client, outputs)
        self.vpc_manager = VpcManager(aws_client)

    @property
    def name(self) -> str:
        return "VPC"

    def validate(self) -> ValidationResult:
        vpc_id = self.outputs.vpc_id
        if not vpc_id:
            return self._skipped("No vpc_id output to look up")

        try:
            vpc = self.vpc_manager.get_vpc_by_id(self.outputs.region, vpc_id)
        except VpcNotFoundError as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"VPC should exist: {e}",
                remediation_steps=[f"Confirm the module created the VPC in {self.outputs.region}"],
            )
        except VpcError as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"VPC lookup failed: {e}",
                remediation_steps=["Verify IAM permissions for ec2:DescribeVpcs and ec2:DescribeSubnets"],
            )

        return ValidationResult(
            validator_name=self.name,
            status=ValidationStatus.PASSED,
            message=f"VPC {vpc.id} exists with {len(vpc.subnets)} subnets",
            details={
                "vpc_id": vpc.id,
                "name": vpc.name,
                "cidr_block": vpc.cidr_block,
                "subnet_count": len(vpc.subnets),
            },
        )


class ClusterVpcValidator(DeploymentValidator):
    """The cluster is attached to the VPC the module reported."""

    def __init__(self, aws_client: AWSClientManager, outputs: DeploymentOutputs) -> None:
        super().__init__(aws_client, outputs)
        self.cluster_manager = EKSClusterManager(aws_client)

    @property
    def name(self) -> str:
        return "EKS Cluster VPC"

    def validate(self) -> ValidationResult:
        if not self.outputs.cluster_id or not self.outputs.vpc_id:
            return self._skipped("cluster_id and vpc_id outputs are both required")

        try:
            cluster = self.cluster_manager.get_cluster(
                self.outputs.region, self.outputs.cluster_id
            )
        except EKSError as e:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"Cluster lookup failed: {e}",
            )

        cluster_vpc: Any = cluster.get("resourcesVpcConfig", {}).get("vpcId")
        if cluster_vpc != self.outputs.vpc_id:
            return ValidationResult(
                validator_name=self.name,
                status=ValidationStatus.FAILED,
                message=f"Cluster is in {cluster_vpc}, module reported {self.outputs.vpc_id}",
                details={"cluster_vpc_id": cluster_vpc, "vpc_id": self.outputs.vpc_id},
            )

        return ValidationResult(
            validator_name=self.name,
            status=ValidationStatus.PASSED,
            message=f"Cluster is attached to {cluster_vpc}",
        )
