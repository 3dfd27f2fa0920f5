"""GCP storage and IAM client, protocols and models."""
