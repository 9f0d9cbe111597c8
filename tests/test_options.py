"""Unit tests for Terraform options."""

import pytest

from eks_harness.terraform.options import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRYABLE_ERRORS,
    DEFAULT_TIME_BETWEEN_RETRIES,
    TerraformOptions,
    with_default_retryable_errors,
)


class TestTerraformOptions:

    def test_requires_directory(self):
        with pytest.raises(ValueError):
            TerraformOptions(terraform_dir="")

    def test_rejects_negative_retries(self):
        with pytest.raises(ValueError):
            TerraformOptions(terraform_dir="./", max_retries=-1)

    def test_clone_is_deep(self):
        options = TerraformOptions(terraform_dir="./", vars={"tags": {"team": "a"}})

        clone = options.clone()
        clone.vars["tags"]["team"] = "b"

        assert options.vars["tags"]["team"] == "a"


class TestWithDefaultRetryableErrors:

    def test_none_rejected(self):
        with pytest.raises(ValueError):
            with_default_retryable_errors(None)

    def test_adds_defaults(self):
        options = TerraformOptions(terraform_dir="./")

        result = with_default_retryable_errors(options)

        for pattern in DEFAULT_RETRYABLE_ERRORS:
            assert pattern in result.retryable_errors
        assert result.max_retries == DEFAULT_MAX_RETRIES
        assert result.time_between_retries == DEFAULT_TIME_BETWEEN_RETRIES

    def test_does_not_modify_original(self):
        options = TerraformOptions(terraform_dir="./")

        with_default_retryable_errors(options)

        assert options.retryable_errors == {}
        assert options.max_retries == 0

    def test_keeps_caller_entries_and_retry_policy(self):
        options = TerraformOptions(
            terraform_dir="./",
            vars={"cluster_name": "test-eks-cluster"},
            max_retries=7,
            time_between_retries=1,
            retryable_errors={
                ".*": "Retryable error",
                ".*Error installing provider.*": "custom description",
            },
        )

        result = with_default_retryable_errors(options)

        assert result.retryable_errors[".*"] == "Retryable error"
        assert result.retryable_errors[".*Error installing provider.*"] == "custom description"
        assert result.max_retries == 7
        assert result.time_between_retries == 1
        assert result.vars == {"cluster_name": "test-eks-cluster"}
