"""Base errors for the Crosspay SDK."""

from __future__ import annotations


class CrosspayError(Exception):
    """Base class for all errors raised by this package."""


class CrosspayAPIError(CrosspayError):
    """The API answered with an error envelope or an unreadable body."""


class UnexpectedStatusError(CrosspayAPIError):
    """The API answered with a non-200 status code."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"unexpected status code: {status_code}")
        self.status_code = status_code
