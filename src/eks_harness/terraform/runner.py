"""Run terraform commands with bounded retries.

A failed command is retried only when its output matches one of the
regular expressions in TerraformOptions.retryable_errors; anything else
is raised immediately.
"""

import logging
import os
import re
import subprocess
import time
from typing import Dict, List, Optional, Tuple

from .options import TerraformOptions


logger = logging.getLogger(__name__)


class TerraformError(Exception):
    """Base exception for terraform operations."""
    pass


class TerraformNotFoundError(TerraformError):
    """Raised when the terraform binary cannot be executed."""
    pass


class TerraformCommandError(TerraformError):
    """Raised when a terraform command exits non-zero or times out."""

    def __init__(
        self,
        command: List[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            message = (
                f"'{' '.join(command)}' failed with exit code {returncode}: "
                f"{stderr.strip() or stdout.strip()}"
            )
        super().__init__(message)

    @property
    def output(self) -> str:
        return f"{self.stdout}\n{self.stderr}"


class MaxRetriesExceededError(TerraformError):
    """Raised when a retryable error persists after every retry."""

    def __init__(self, description: str, attempts: int, last_error: TerraformCommandError):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"'{description}' unsuccessful after {attempts} attempts: {last_error}"
        )


def build_environment(options: TerraformOptions) -> Dict[str, str]:
    """Process environment plus automation flags and options.env_vars."""
    env = os.environ.copy()
    env["TF_IN_AUTOMATION"] = "1"
    env["TF_INPUT"] = "0"
    env.update(options.env_vars)
    return env


def match_retryable_error(
    output: str, retryable_errors: Dict[str, str]
) -> Optional[str]:
    """Description of the first retryable pattern found in output, if any.

    Raises:
        TerraformError: When a pattern is not a valid regular expression
    """
    for pattern, description in retryable_errors.items():
        try:
            if re.search(pattern, output):
                return description
        except re.error as e:
            raise TerraformError(f"Invalid retryable error pattern '{pattern}': {e}")
    return None


def _as_text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value or ""


def _run_once(
    options: TerraformOptions, command: List[str], allowed_exit_codes: Tuple[int, ...]
) -> Tuple[int, str]:
    """Run command a single time, returning the exit code and stdout.

    Raises:
        TerraformNotFoundError: When the binary is missing
        TerraformCommandError: On non-zero exit or timeout
    """
    start = time.perf_counter()
    try:
        result = subprocess.run(
            command,
            cwd=options.terraform_dir,
            env=build_environment(options),
            check=False,
            capture_output=True,
            text=True,
            timeout=options.command_timeout,
        )
    except FileNotFoundError as e:
        raise TerraformNotFoundError(
            f"Unable to run '{options.terraform_binary}': {e}"
        ) from e
    except subprocess.TimeoutExpired as e:
        duration = time.perf_counter() - start
        raise TerraformCommandError(
            command,
            None,
            stdout=_as_text(e.stdout),
            stderr=_as_text(e.stderr),
            message=f"'{' '.join(command)}' timed out after {duration:.2f}s",
        ) from e

    duration = time.perf_counter() - start
    logger.debug(f"'{' '.join(command)}' took {duration:.2f}s")

    if result.returncode not in allowed_exit_codes:
        raise TerraformCommandError(
            command, result.returncode, result.stdout, result.stderr
        )
    return result.returncode, result.stdout


def run_terraform_command_with_exit_code(
    options: TerraformOptions,
    *args: str,
    allowed_exit_codes: Tuple[int, ...] = (0,),
) -> Tuple[int, str]:
    """Run terraform with args in options.terraform_dir.

    Exit codes listed in allowed_exit_codes count as success and are never
    retried; ``plan -detailed-exitcode`` uses this for its exit code 2.

    Args:
        options: Terraform options (directory, environment, retry policy)
        *args: Arguments after the binary name, e.g. ("apply", "-auto-approve")
        allowed_exit_codes: Exit codes treated as success

    Returns:
        Exit code and captured stdout of the successful attempt

    Raises:
        TerraformCommandError: When the command fails with a non-retryable error
        MaxRetriesExceededError: When retryable errors persist past max_retries
        TerraformNotFoundError: When the terraform binary is missing
    """
    command = [options.terraform_binary, *args]
    description = f"terraform {' '.join(args)}"
    attempts = options.max_retries + 1

    last_error: Optional[TerraformCommandError] = None
    for attempt in range(1, attempts + 1):
        logger.info(f"Running {description} in {options.terraform_dir} (attempt {attempt}/{attempts})")
        try:
            return _run_once(options, command, allowed_exit_codes)
        except TerraformCommandError as e:
            reason = match_retryable_error(e.output, options.retryable_errors)
            if reason is None:
                logger.error(f"{description} failed with a non-retryable error")
                raise
            last_error = e
            logger.warning(f"{description} failed with retryable error: {reason}")
            if attempt < attempts:
                logger.info(f"Sleeping {options.time_between_retries}s before retrying {description}")
                time.sleep(options.time_between_retries)

    raise MaxRetriesExceededError(description, attempts, last_error)


def run_terraform_command(options: TerraformOptions, *args: str) -> str:
    """Run terraform with args, returning stdout. See run_terraform_command_with_exit_code."""
    _, stdout = run_terraform_command_with_exit_code(options, *args)
    return stdout
