"""Render Python values as terraform command-line arguments."""

import json
from typing import Any, Dict, List


def to_hcl(value: Any, nested: bool = False) -> str:
    """Render value as an HCL literal.

    Top-level strings are passed to terraform unquoted (``-var name=value``);
    strings inside lists and maps are quoted.

    Args:
        value: Value to render
        nested: Whether value sits inside a list or map

    Returns:
        HCL representation of value
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return json.dumps(value) if nested else value
    if isinstance(value, dict):
        items = [
            f"{json.dumps(str(key))} = {to_hcl(value[key], nested=True)}"
            for key in sorted(value, key=str)
        ]
        return "{" + ", ".join(items) + "}"
    if isinstance(value, (list, tuple, set)):
        elements = sorted(value, key=str) if isinstance(value, set) else value
        return "[" + ", ".join(to_hcl(v, nested=True) for v in elements) + "]"
    raise TypeError(f"Cannot render {type(value).__name__} as HCL")


def format_var_args(variables: Dict[str, Any]) -> List[str]:
    """Format variables as ``-var key=value`` pairs, sorted by key."""
    args = []
    for key in sorted(variables):
        args.extend(["-var", f"{key}={to_hcl(variables[key])}"])
    return args


def format_var_file_args(var_files: List[str]) -> List[str]:
    return [f"-var-file={path}" for path in var_files]


def format_backend_config_args(backend_config: Dict[str, Any]) -> List[str]:
    """Format backend settings for ``terraform init``.

    A None value emits the bare ``-backend-config=key`` form, which terraform
    treats as a path to a backend configuration file.
    """
    args = []
    for key in sorted(backend_config):
        value = backend_config[key]
        if value is None:
            args.append(f"-backend-config={key}")
        else:
            args.append(f"-backend-config={key}={to_hcl(value)}")
    return args
