"""Abstract OS process liveness port."""

from abc import ABC, abstractmethod


class ProcessProbe(ABC):
    """Answers whether an OS process is still running."""

    @abstractmethod
    def is_process_alive(self, pid: int) -> bool:
        """Return True if a process with this PID is currently running."""
        pass
