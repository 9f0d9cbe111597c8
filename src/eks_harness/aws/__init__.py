"""AWS lookups used to verify provisioned infrastructure."""
