class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error

class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass

class PersistenceError(AppError):
    """Raised when the local durable store cannot be read or written."""
    pass

class SubmissionError(AppError):
    """Raised when the remote policy store rejects a write."""
    pass
