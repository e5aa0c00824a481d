from typing import List, Optional


class RemoteRequestError(Exception):
    """Non-2xx response from Vault.

    The message reads ``<METHOD> <path> failed with <status>`` and, when Vault
    sent an ``errors`` list, ``: <err1>; <err2>`` appended.
    """

    def __init__(self, method: str, path: str, status: int, errors: Optional[List[str]] = None):
        self.method = method
        self.path = path
        self.status = status
        self.errors = list(errors or [])
        message = f"{method} {path} failed with {status}"
        if self.errors:
            message += ": " + "; ".join(self.errors)
        super().__init__(message)


class MissingVersionError(Exception):
    """Metadata for a KV path carries no usable current_version."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"no current version for {path}")
