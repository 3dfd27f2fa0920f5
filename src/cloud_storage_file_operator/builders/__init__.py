"""Builders turning CRD specs into desired state and provider instances."""
