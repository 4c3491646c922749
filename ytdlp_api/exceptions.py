"""
Defines custom exceptions used throughout the application.

These exceptions allow for more specific error handling than built-in exceptions.
"""

class YtdlpApiError(Exception):
    """Base class for all application errors."""
    pass

class DuplicateInFlightError(YtdlpApiError):
    """Raised when a job for the same key is still starting or downloading."""

    def __init__(self, key: str):
        super().__init__(f"A download for {key} is already in progress.")
        self.key = key

class URLExtractionError(YtdlpApiError):
    """Custom exception for URL processing failures."""
    pass

class ServerControlError(YtdlpApiError):
    """Raised when the background server process cannot be managed."""
    pass
