"""Runner abstraction layer.

The session only knows this protocol; ``runner.CommandRunner`` is the
subprocess-backed adapter and tests substitute their own fakes.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from testloop.models import Config


@runtime_checkable
class RunnerProtocol(Protocol):
    """Protocol for executing one test pass."""

    @abstractmethod
    def run(self, config: Config) -> None:
        """Run the tests selected by ``config`` and block until done.

        Raises:
            NoMatchingFilesError: If the selection matched no tests.
            Exception: Any other failure; the session does not recover.
        """
        ...
