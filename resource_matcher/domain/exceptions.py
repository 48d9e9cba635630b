"""Exceptions raised at the domain boundary."""

from typing import List, Optional


class InvalidProfileError(ValueError):
    """A matching request body could not be turned into a profile.

    Rejected before matching starts; the API maps it to HTTP 400.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        detail = f"{message}: {'; '.join(self.errors)}" if self.errors else message
        super().__init__(detail)
