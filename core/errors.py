# core/errors.py
from typing import Iterable, Optional


class MarketplaceError(Exception):
    """Base class for errors raised while aggregating marketplace prompts."""


class FetchError(MarketplaceError):
    """
    The remote prompt resource could not be retrieved, either because the
    transport failed or because the server answered with a non-success status.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class FormatError(MarketplaceError):
    """
    The remote resource was retrieved but its header lacks the columns the
    importer maps. Usually means the upstream schema changed.
    """

    def __init__(self, message: str, missing_columns: Iterable[str] = ()):
        super().__init__(message)
        self.missing_columns = tuple(missing_columns)
