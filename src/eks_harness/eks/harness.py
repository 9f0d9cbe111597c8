"""Provision, verify and tear down the EKS module for one scenario.

EKSModuleTest runs terraform init and apply against the configured module,
reads the module outputs, runs the deployment validators and always
destroys what it created, even when apply or a validator fails.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import time

from ..aws.regions import get_random_stable_region
from ..core.aws_client import AWSClientManager
from ..core.config import Configuration
from ..core.validator import (
    BaseValidator,
    ValidationResult,
    ValidationStatus,
    all_passed,
    run_validators,
)
from ..terraform.lifecycle import (
    PLAN_NO_CHANGES,
    destroy,
    init_and_apply,
    output,
    plan_exit_code,
)
from ..terraform.options import TerraformOptions, with_default_retryable_errors
from ..terraform.runner import TerraformError
from .validators import (
    CLUSTER_ENDPOINT_OUTPUT,
    CLUSTER_ID_OUTPUT,
    VPC_ID_OUTPUT,
    ClusterNameValidator,
    ClusterStatusValidator,
    ClusterVersionValidator,
    ClusterVpcValidator,
    DeploymentOutputs,
    OutputsValidator,
    VpcValidator,
)


logger = logging.getLogger(__name__)


class ModuleTestError(Exception):
    """Raised when a scenario cannot be run or torn down."""
    pass


@dataclass
class Scenario:
    """One set of module inputs and the checks to run against it."""

    name: str
    vars: Dict[str, Any] = field(default_factory=dict)
    required_outputs: List[str] = field(
        default_factory=lambda: [CLUSTER_ID_OUTPUT, CLUSTER_ENDPOINT_OUTPUT, VPC_ID_OUTPUT]
    )
    expected_cluster_name: Optional[str] = None
    expected_version: Optional[str] = None
    retryable_errors: Dict[str, str] = field(default_factory=dict)
    check_status: bool = True
    check_vpc: bool = True
    check_idempotent: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        """Build a scenario from a configuration mapping.

        Unknown keys are ignored. expected_version defaults to the
        cluster_version variable when one is passed.
        """
        variables = dict(data.get("vars") or {})
        expected_version = data.get("expected_version")
        if expected_version is None and "cluster_version" in variables:
            expected_version = str(variables["cluster_version"])

        scenario = cls(
            name=data["name"],
            vars=variables,
            expected_cluster_name=data.get("expected_cluster_name"),
            expected_version=expected_version,
            retryable_errors=dict(data.get("retryable_errors") or {}),
            check_status=data.get("check_status", True),
            check_vpc=data.get("check_vpc", True),
            check_idempotent=data.get("check_idempotent", False),
        )
        if data.get("required_outputs") is not None:
            scenario.required_outputs = list(data["required_outputs"])
        return scenario


DEFAULT_SCENARIOS = [
    Scenario(
        name="default",
        vars={"cluster_name": "test-eks-cluster"},
        retryable_errors={".*": "Retryable error"},
    ),
    Scenario(
        name="custom-vars",
        vars={"cluster_name": "custom-test-eks-cluster", "cluster_version": "1.28"},
        required_outputs=[CLUSTER_ID_OUTPUT, CLUSTER_ENDPOINT_OUTPUT],
        expected_cluster_name="custom-test-eks-cluster",
        expected_version="1.28",
        check_status=False,
        check_vpc=False,
    ),
]


def load_scenarios(config: Configuration) -> List[Scenario]:
    """Scenarios from configuration, or the built-in ones when none are set."""
    configured = config.get_scenarios()
    if not configured:
        return list(DEFAULT_SCENARIOS)
    return [Scenario.from_dict(data) for data in configured]


@dataclass
class ModuleTestReport:
    """Outcome of running one scenario."""

    scenario: str
    region: str
    outputs: Dict[str, str] = field(default_factory=dict)
    results: List[ValidationResult] = field(default_factory=list)
    applied: bool = False
    destroyed: bool = False
    duration_seconds: float = 0.0

    @property
    def passed(self) -> bool:
        return self.applied and all_passed(self.results)

    @property
    def failures(self) -> List[ValidationResult]:
        return [result for result in self.results if result.failed]


class EKSModuleTest:
    """Runs one scenario against the configured Terraform module."""

    def __init__(
        self,
        config: Configuration,
        aws_client: AWSClientManager,
        scenario: Scenario,
        region: Optional[str] = None,
    ) -> None:
        """Initialize the module test.

        Args:
            config: Configuration instance
            aws_client: AWS client manager instance
            scenario: Scenario to run
            region: Region override; defaults to aws.region or a random
                    stable region
        """
        self.config = config
        self.aws_client = aws_client
        self.scenario = scenario
        self.region = region or config.get_region() or get_random_stable_region(
            config.get_approved_regions(), config.get_forbidden_regions()
        )
        self.aws_client.set_region(self.region)

    def build_options(self) -> TerraformOptions:
        """Terraform options for this scenario.

        The region is exported to terraform so the provider creates the
        cluster where the validators look for it.
        """
        variables = self.config.get_terraform_vars()
        variables.update(self.scenario.vars)

        region_var = self.config.get("terraform.region_var")
        if region_var:
            variables.setdefault(region_var, self.region)

        env_vars = self.config.get_terraform_env()
        env_vars["AWS_REGION"] = self.region
        env_vars["AWS_DEFAULT_REGION"] = self.region
        if self.aws_client.profile_name:
            env_vars.setdefault("AWS_PROFILE", self.aws_client.profile_name)

        retryable_errors = self.config.get_retryable_errors()
        retryable_errors.update(self.scenario.retryable_errors)

        options = TerraformOptions(
            terraform_dir=self.config.get_terraform_dir(),
            vars=variables,
            var_files=self.config.get_var_files(),
            env_vars=env_vars,
            backend_config=self.config.get_backend_config(),
            max_retries=self.config.get_max_retries(),
            time_between_retries=self.config.get_time_between_retries(),
            retryable_errors=retryable_errors,
            terraform_binary=self.config.get_terraform_binary(),
            command_timeout=self.config.get_command_timeout(),
        )
        return with_default_retryable_errors(options)

    def collect_outputs(self, options: TerraformOptions) -> DeploymentOutputs:
        """Read the outputs the validators need.

        Raises:
            OutputError: When terraform cannot return an output
        """
        keys = list(self.scenario.required_outputs)
        if self.scenario.check_vpc and VPC_ID_OUTPUT not in keys:
            keys.append(VPC_ID_OUTPUT)
        if CLUSTER_ID_OUTPUT not in keys and (
            self.scenario.check_status
            or self.scenario.expected_cluster_name
            or self.scenario.expected_version
        ):
            keys.append(CLUSTER_ID_OUTPUT)

        values = {key: output(options, key) for key in keys}
        return DeploymentOutputs(region=self.region, values=values)

    def build_validators(self, outputs: DeploymentOutputs) -> List[BaseValidator]:
        validators: List[BaseValidator] = [
            OutputsValidator(self.aws_client, outputs, self.scenario.required_outputs)
        ]

        if self.scenario.check_status:
            validators.append(
                ClusterStatusValidator(
                    self.aws_client,
                    outputs,
                    expected_status=self.config.get_expected_cluster_status(),
                    wait_timeout=self.config.get_cluster_wait_timeout(),
                )
            )
        if self.scenario.expected_cluster_name:
            validators.append(
                ClusterNameValidator(self.aws_client, outputs, self.scenario.expected_cluster_name)
            )
        if self.scenario.expected_version:
            validators.append(
                ClusterVersionValidator(self.aws_client, outputs, self.scenario.expected_version)
            )
        if self.scenario.check_vpc:
            validators.append(VpcValidator(self.aws_client, outputs))
            if self.scenario.check_status:
                validators.append(ClusterVpcValidator(self.aws_client, outputs))

        return validators

    def check_idempotent(self, options: TerraformOptions) -> ValidationResult:
        """A second plan right after apply must report no changes."""
        name = "Terraform Idempotency"
        try:
            exit_code = plan_exit_code(options)
        except TerraformError as e:
            return ValidationResult(
                validator_name=name,
                status=ValidationStatus.FAILED,
                message=f"Plan after apply failed: {e}",
            )

        if exit_code != PLAN_NO_CHANGES:
            return ValidationResult(
                validator_name=name,
                status=ValidationStatus.FAILED,
                message="Plan after apply still reports changes",
                remediation_steps=["Look for attributes the provider rewrites after apply"],
            )

        return ValidationResult(
            validator_name=name,
            status=ValidationStatus.PASSED,
            message="Plan after apply reports no changes",
        )

    def run(self) -> ModuleTestReport:
        """Apply, verify and destroy.

        Returns:
            ModuleTestReport with outputs and validation results

        Raises:
            TerraformError: When init, apply or an output read fails
            ModuleTestError: When destroy fails after a successful run
        """
        start_time = time.time()
        report = ModuleTestReport(scenario=self.scenario.name, region=self.region)
        options = self.build_options()

        logger.info(f"Running scenario {self.scenario.name} in {self.region}")
        try:
            self._deploy_and_verify(options, report)
        except BaseException:
            self._teardown(options, report, raise_errors=False)
            report.duration_seconds = time.time() - start_time
            raise

        self._teardown(options, report, raise_errors=True)
        report.duration_seconds = time.time() - start_time
        return report

    def _deploy_and_verify(self, options: TerraformOptions, report: ModuleTestReport) -> None:
        init_and_apply(options)
        report.applied = True

        outputs = self.collect_outputs(options)
        report.outputs = dict(outputs.values)

        report.results = run_validators(self.build_validators(outputs))
        if self.scenario.check_idempotent:
            report.results.append(self.check_idempotent(options))

    def _teardown(
        self, options: TerraformOptions, report: ModuleTestReport, raise_errors: bool
    ) -> None:
        if self.config.skip_teardown():
            logger.warning(
                f"Skipping destroy for scenario {self.scenario.name}; "
                f"resources remain in {self.region}"
            )
            return

        try:
            destroy(options)
            report.destroyed = True
        except TerraformError as e:
            logger.error(f"Destroy failed for scenario {self.scenario.name}: {e}")
            if raise_errors:
                raise ModuleTestError(
                    f"Destroy failed for scenario {self.scenario.name}: {e}"
                ) from e
