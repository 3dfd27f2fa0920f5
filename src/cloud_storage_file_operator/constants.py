"""Constants for the Cloud Storage File Operator."""

# API Group
API_GROUP = "csfo.sijoma.dev"
API_GROUP_VERSION = f"{API_GROUP}/v1alpha1"

# Resource Kinds
KIND_FILE_TRANSFER = "FileTransfer"
KIND_FOLDER = "Folder"

# Labels
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"

# Annotations
ANNOTATION_GCP_SERVICE_ACCOUNT = "iam.gke.io/gcp-service-account"

# Field Manager
FIELD_MANAGER = "cloud-storage-file-operator"
CONTROLLER_NAME = "cloud-storage-file-operator"

# Secret keys
CREDENTIALS_SECRET_KEY = "service_account_private_key"

# IAM roles
ROLE_WORKLOAD_IDENTITY_USER = "roles/iam.workloadIdentityUser"
ROLE_FOLDER_ADMIN = "roles/storage.folderAdmin"

# Suffix of the Kubernetes ServiceAccount created for a Folder
OWNER_SERVICE_ACCOUNT_SUFFIX = "-owner"

# FileTransfer copy states
COPY_STATUS_PENDING = "Pending"
COPY_STATUS_DONE = "Done"

# Condition Types
COND_READY = "Ready"
COND_COPY_FAILED = "CopyFailed"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_VALIDATE_SUCCEEDED = "ValidateSucceeded"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_OBJECTS_COPIED = "ObjectsCopied"
EVENT_REASON_COPY_FAILED = "CopyFailed"
EVENT_REASON_FOLDER_PROVISIONED = "FolderProvisioned"
