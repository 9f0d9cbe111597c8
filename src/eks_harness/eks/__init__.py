"""EKS module test scenarios, validators and run orchestration."""
