"""Error types raised by the CDN services.

Each one is an ``HTTPException`` with a fixed status code, so services can
raise them directly and the application's exception handler renders them as
``{"message": ...}`` bodies.
"""
from fastapi import HTTPException

# Response messages
MISSING_AUTH_TOKEN = "Failed to get auth token from env"
INCORRECT_AUTH_TOKEN = "Incorrect authorization token"
MISSING_FIELD = "Missing image field in the multipart form"
IMPROPER_BYTES = "Improper bytes sent"
CREATE_DIR_FAILED = "Creating the directory failed"
WRITE_FAILED = "Writing to file system failed"
FILE_NOT_FOUND = "The requested file was not found on the CDN"
DELETE_FAILED = "Something went wrong when deleting the file"
NOT_A_FILE = "Only files can be deleted"
INVALID_DIRECTORY = "Invalid directory"
INVALID_FILENAME = "Invalid filename"
INVALID_PATH = "Invalid path"


class CdnError(HTTPException):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(status_code=self.status_code, detail=message)

    @property
    def message(self) -> str:
        return self.detail


class ConfigMissingError(CdnError):
    """The shared secret is not configured."""
    status_code = 500


class UnauthorizedError(CdnError):
    status_code = 401


class BadRequestError(CdnError):
    status_code = 400


class PayloadTooLargeError(CdnError):
    status_code = 413


class NotFoundError(CdnError):
    status_code = 404


class InternalError(CdnError):
    """Filesystem failure of any kind."""
    status_code = 500
