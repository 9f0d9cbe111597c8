"""Terraform lifecycle calls: init, apply, destroy and output."""

import json
import logging
from typing import Any, Dict, List

from .hcl import format_backend_config_args, format_var_args, format_var_file_args
from .options import TerraformOptions
from .runner import (
    MaxRetriesExceededError,
    TerraformCommandError,
    TerraformError,
    run_terraform_command,
    run_terraform_command_with_exit_code,
)


logger = logging.getLogger(__name__)

PLAN_NO_CHANGES = 0
PLAN_HAS_CHANGES = 2


class OutputError(TerraformError):
    """Raised when a module output is missing, empty or not valid JSON."""
    pass


def _common_args(options: TerraformOptions) -> List[str]:
    args = []
    if options.no_color:
        args.append("-no-color")
    return args


def _variable_args(options: TerraformOptions) -> List[str]:
    return format_var_file_args(options.var_files) + format_var_args(options.vars)


def _apply_flags(options: TerraformOptions) -> List[str]:
    args = []
    if options.lock is not None:
        args.append(f"-lock={'true' if options.lock else 'false'}")
    if options.parallelism is not None:
        args.append(f"-parallelism={options.parallelism}")
    return args


def init(options: TerraformOptions) -> str:
    """Run ``terraform init``."""
    args = ["init", f"-upgrade={'true' if options.upgrade else 'false'}"]
    args += _common_args(options)
    args += format_backend_config_args(options.backend_config)
    return run_terraform_command(options, *args)


def apply(options: TerraformOptions) -> str:
    """Run ``terraform apply`` non-interactively with the configured vars."""
    args = ["apply", "-input=false", "-auto-approve"]
    args += _common_args(options) + _apply_flags(options) + _variable_args(options)
    return run_terraform_command(options, *args)


def init_and_apply(options: TerraformOptions) -> str:
    """Run ``terraform init`` then ``terraform apply``.

    Returns:
        stdout of the apply
    """
    logger.info(f"Provisioning module in {options.terraform_dir}")
    init(options)
    return apply(options)


def destroy(options: TerraformOptions) -> str:
    """Run ``terraform destroy`` non-interactively with the configured vars."""
    logger.info(f"Destroying module in {options.terraform_dir}")
    args = ["destroy", "-auto-approve", "-input=false"]
    args += _common_args(options) + _apply_flags(options) + _variable_args(options)
    return run_terraform_command(options, *args)


def plan_exit_code(options: TerraformOptions) -> int:
    """Run ``terraform plan -detailed-exitcode``.

    Returns:
        PLAN_NO_CHANGES (0) or PLAN_HAS_CHANGES (2)

    Raises:
        TerraformCommandError: When the plan itself fails (exit code 1)
    """
    args = ["plan", "-input=false", "-detailed-exitcode"]
    args += _common_args(options) + _variable_args(options)
    exit_code, _ = run_terraform_command_with_exit_code(
        options, *args, allowed_exit_codes=(PLAN_NO_CHANGES, PLAN_HAS_CHANGES)
    )
    return exit_code


def _parse_output_json(raw: str, description: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise OutputError(f"Output {description} is not valid JSON: {e}") from e


def output_json(options: TerraformOptions, key: str) -> Any:
    """Decoded JSON value of a single output.

    Raises:
        OutputError: When the output does not exist or is not valid JSON
    """
    try:
        raw = run_terraform_command(options, "output", "-no-color", "-json", key)
    except (TerraformCommandError, MaxRetriesExceededError) as e:
        raise OutputError(f"Unable to read output '{key}': {e}") from e
    return _parse_output_json(raw, f"'{key}'")


def output(options: TerraformOptions, key: str) -> str:
    """Value of a single output as a string.

    String outputs are returned without quotes; lists, maps and numbers are
    returned as compact JSON.
    """
    value = output_json(options, key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def output_required(options: TerraformOptions, key: str) -> str:
    """Like output, but an empty value is an error.

    Raises:
        OutputError: When the output is empty
    """
    value = output(options, key)
    if not value:
        raise OutputError(f"Output '{key}' is empty")
    return value


def output_all(options: TerraformOptions) -> Dict[str, Any]:
    """All outputs of the module as {name: value}."""
    try:
        raw = run_terraform_command(options, "output", "-no-color", "-json")
    except (TerraformCommandError, MaxRetriesExceededError) as e:
        raise OutputError(f"Unable to read outputs: {e}") from e

    decoded = _parse_output_json(raw, "list")
    if not isinstance(decoded, dict):
        raise OutputError("Terraform returned outputs in an unexpected format")

    outputs = {}
    for name, entry in decoded.items():
        if isinstance(entry, dict) and "value" in entry:
            outputs[name] = entry["value"]
        else:
            outputs[name] = entry
    return outputs
