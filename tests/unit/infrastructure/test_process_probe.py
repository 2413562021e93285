"""Unit tests for the psutil-backed process probe."""

import os
from unittest.mock import MagicMock, patch

import psutil
import pytest
from fuel.infrastructure.process_probe import PsutilProcessProbe


class TestPsutilProcessProbe:
    def test_current_process_is_alive(self) -> None:
        assert PsutilProcessProbe().is_process_alive(os.getpid()) is True

    @pytest.mark.parametrize("pid", [0, -1])
    def test_non_positive_pid_is_not_alive(self, pid: int) -> None:
        assert PsutilProcessProbe().is_process_alive(pid) is False

    def test_missing_process_is_not_alive(self) -> None:
        with patch(
            "fuel.infrastructure.process_probe.psutil.Process",
            side_effect=psutil.NoSuchProcess(999999),
        ):
            assert PsutilProcessProbe().is_process_alive(999999) is False

    def test_zombie_is_not_alive(self) -> None:
        zombie = MagicMock()
        zombie.status.return_value = psutil.STATUS_ZOMBIE
        with patch("fuel.infrastructure.process_probe.psutil.Process", return_value=zombie):
            assert PsutilProcessProbe().is_process_alive(1234) is False

    def test_access_denied_counts_as_alive(self) -> None:
        with patch(
            "fuel.infrastructure.process_probe.psutil.Process",
            side_effect=psutil.AccessDenied(1),
        ):
            assert PsutilProcessProbe().is_process_alive(1) is True
