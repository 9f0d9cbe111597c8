"""Terraform execution layer.

Options, argument formatting, retrying command runner and the
init/apply/output/destroy lifecycle calls.
"""

from .options import TerraformOptions, with_default_retryable_errors
from .runner import (
    MaxRetriesExceededError,
    TerraformCommandError,
    TerraformError,
    TerraformNotFoundError,
    run_terraform_command,
    run_terraform_command_with_exit_code,
)
from .lifecycle import (
    OutputError,
    apply,
    destroy,
    init,
    init_and_apply,
    output,
    output_all,
    output_required,
    plan_exit_code,
)

__all__ = [
    "TerraformOptions",
    "with_default_retryable_errors",
    "TerraformError",
    "TerraformCommandError",
    "TerraformNotFoundError",
    "MaxRetriesExceededError",
    "run_terraform_command",
    "run_terraform_command_with_exit_code",
    "OutputError",
    "init",
    "apply",
    "init_and_apply",
    "destroy",
    "output",
    "output_required",
    "output_all",
    "plan_exit_code",
]
