"""Handler modules for CRD resources."""

# Import handlers to register them - all handlers register themselves via @kopf decorators
from . import filetransfer  # noqa: F401
from . import folder  # noqa: F401
