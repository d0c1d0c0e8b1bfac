"""
Exception types for PVC Reaper
"""


class ReaperError(Exception):
    """Base class for all PVC Reaper errors"""


class ConfigError(ReaperError):
    """Raised when the configuration is invalid; fatal at startup"""


class ClusterConnectionError(ReaperError):
    """Raised when no Kubernetes configuration could be loaded"""


class SnapshotError(ReaperError):
    """Raised when nodes, PVCs or pods cannot be listed for a cycle"""

    def __init__(self, resource: str, cause: Exception):
        super().__init__(f"Failed to list {resource}: {cause}")
        self.resource = resource
        self.cause = cause
