"""EKS Terraform Harness - Main Package.

This package provisions an EKS cluster from a Terraform module, validates
the module outputs against the live AWS API and tears the cluster down.
"""

__version__ = "1.0.0"
__author__ = "EKS Terraform Harness Team"
