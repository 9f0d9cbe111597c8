"""Terraform invocation options.

TerraformOptions holds everything needed to run terraform against one
module directory: variables, environment, backend settings and the retry
policy used when a command fails with a known transient error.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DEFAULT_MAX_RETRIES = 3

# Seconds
DEFAULT_TIME_BETWEEN_RETRIES = 5

_TRANSIENT_PLUGIN_ERROR = "Failed to retrieve plugin due to transient network error."

# Regex -> description of errors that are safe to retry.
DEFAULT_RETRYABLE_ERRORS: Dict[str, str] = {
    ".*unable to verify signature.*": _TRANSIENT_PLUGIN_ERROR,
    ".*unable to verify checksum.*": _TRANSIENT_PLUGIN_ERROR,
    ".*no provider exists with the given name.*": _TRANSIENT_PLUGIN_ERROR,
    ".*registry service is unreachable.*": _TRANSIENT_PLUGIN_ERROR,
    ".*Error installing provider.*": _TRANSIENT_PLUGIN_ERROR,
    ".*Failed to query available provider packages.*": _TRANSIENT_PLUGIN_ERROR,
    ".*timeout while waiting for plugin to start.*": _TRANSIENT_PLUGIN_ERROR,
    ".*timed out waiting for server handshake.*": _TRANSIENT_PLUGIN_ERROR,
    "could not query provider registry for": _TRANSIENT_PLUGIN_ERROR,
    ".*Provider produced inconsistent result after apply.*": (
        "Provider eventual consistency error."
    ),
}


@dataclass
class TerraformOptions:
    """Options for running terraform in a module directory."""

    terraform_dir: str
    vars: Dict[str, Any] = field(default_factory=dict)
    var_files: List[str] = field(default_factory=list)
    env_vars: Dict[str, str] = field(default_factory=dict)
    backend_config: Dict[str, Any] = field(default_factory=dict)
    max_retries: int = 0
    time_between_retries: float = 0
    retryable_errors: Dict[str, str] = field(default_factory=dict)
    terraform_binary: str = "terraform"
    no_color: bool = True
    lock: Optional[bool] = None
    upgrade: bool = False
    parallelism: Optional[int] = None
    command_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.terraform_dir:
            raise ValueError("terraform_dir must be a non-empty path")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.time_between_retries < 0:
            raise ValueError("time_between_retries must not be negative")

    def clone(self) -> "TerraformOptions":
        """Deep copy so callers can adjust options per command."""
        return copy.deepcopy(self)


def with_default_retryable_errors(
    options: Optional[TerraformOptions],
) -> TerraformOptions:
    """Return a copy of options with the default retryable errors merged in.

    Entries already present in options.retryable_errors keep their own
    description. max_retries and time_between_retries fall back to the
    defaults only when left at zero.

    Args:
        options: Options to extend

    Returns:
        New TerraformOptions; the argument is not modified

    Raises:
        ValueError: When options is None
    """
    if options is None:
        raise ValueError("options must not be None")

    new_options = options.clone()

    for pattern, description in DEFAULT_RETRYABLE_ERRORS.items():
        new_options.retryable_errors.setdefault(pattern, description)

    if not new_options.max_retries:
        new_options.max_retries = DEFAULT_MAX_RETRIES
    if not new_options.time_between_retries:
        new_options.time_between_retries = DEFAULT_TIME_BETWEEN_RETRIES

    return new_options
