"""Process liveness checks backed by psutil."""

import psutil

from fuel.domain.ports.process_probe import ProcessProbe


class PsutilProcessProbe(ProcessProbe):
    """Check OS process liveness with psutil.

    Zombie processes count as dead: they have exited and only wait to be reaped.
    """

    def is_process_alive(self, pid: int) -> bool:
        if pid <= 0:
            return False
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Exists but belongs to another user
            return True
