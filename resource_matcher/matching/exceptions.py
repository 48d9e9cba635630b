"""Exceptions raised by the matching engine."""


class MatchCancelledError(Exception):
    """The match was cancelled or ran past its deadline.

    No partial result is produced.
    """

    def __init__(self, message: str, run_id: str = None):
        super().__init__(message)
        self.run_id = run_id
