from abc import ABC, abstractmethod
from typing import BinaryIO


class ReportSource(ABC):
    """
    Abstract contract for cache manager report sources.

    Each implementation provides:
        - ``url`` — where the report comes from (used in logs and spans)
        - ``fetch()`` — open the report as a binary, line-iterable stream

    The collector owns the returned stream and closes it once drained or
    on early abort.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Location of the report, for logging."""

    @abstractmethod
    def fetch(self) -> BinaryIO:
        """
        Open the report.

        Returns:
            A readable binary stream usable as a context manager.

        Raises:
            FetchError: the report could not be retrieved.
        """
