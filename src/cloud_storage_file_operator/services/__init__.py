"""Cloud storage services: provisioning, replication and the GCP transport."""
