"""
SSI Error Types
===============

Error kinds raised by the managers and mapped to HTTP responses by the API:

- ValidationError: missing / malformed required field (400)
- NotFoundError: referenced record does not exist (404)
- ConflictError: illegal status transition or reused invite (409)
- DecryptionError: envelope failed authentication (500)
- StoreError: underlying database failure (500)
"""

from typing import Dict, Optional


class SSIError(Exception):
    """Base error carrying the HTTP status used by the API layer"""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.message}


class ValidationError(SSIError):
    status_code = 400


class NotFoundError(SSIError):
    status_code = 404


class ConflictError(SSIError):
    status_code = 409


class DecryptionError(SSIError):
    status_code = 500

    def __init__(self, message: str = "Decryption failed"):
        super().__init__(message)


class StoreError(SSIError):
    status_code = 500
