class MessageServiceError(Exception):
    """Base error for the deployment tooling."""


class ManifestError(MessageServiceError):
    """Manifest files are missing or cannot be parsed."""


class ClusterError(MessageServiceError):
    """The cluster cannot be reached or did not reach the expected state."""
