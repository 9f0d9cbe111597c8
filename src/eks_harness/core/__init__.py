"""Core components for the EKS Terraform harness.

This module contains the foundational components including AWS client
management, configuration handling and the validation framework.
"""
