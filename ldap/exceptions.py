class DirectoryReportError(Exception):
    """Base exception for directory report errors."""
    pass

class DirectoryEnvironmentError(DirectoryReportError):
    """Raised when the directory service or its client library is unavailable."""
    pass

class CredentialError(DirectoryReportError):
    """Raised when credentials for the directory bind cannot be acquired."""
    pass

class OutputPathError(DirectoryReportError):
    """Raised when the report output directory cannot be created or written."""
    pass

class NoNodesFoundError(DirectoryReportError):
    """Raised when no nodes match the target name."""
    pass

class NoCountsObtainedError(DirectoryReportError):
    """Raised when every per-node count query failed."""
    pass
