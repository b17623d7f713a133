"""Tests for psutil process checks."""

from unittest.mock import MagicMock, patch

import psutil
from django.test import SimpleTestCase

from apps.daemons import processes


class IsAliveTests(SimpleTestCase):
    """Tests for is_alive."""

    @patch("apps.daemons.processes.psutil.Process")
    def test_running_process(self, mock_process):
        mock_process.return_value.is_running.return_value = True
        mock_process.return_value.status.return_value = psutil.STATUS_SLEEPING

        self.assertTrue(processes.is_alive(4321))

    @patch("apps.daemons.processes.psutil.Process")
    def test_zombie_counts_as_dead(self, mock_process):
        mock_process.return_value.is_running.return_value = True
        mock_process.return_value.status.return_value = psutil.STATUS_ZOMBIE

        self.assertFalse(processes.is_alive(4321))

    @patch("apps.daemons.processes.psutil.Process", side_effect=psutil.NoSuchProcess(4321))
    def test_missing_process(self, mock_process):
        self.assertFalse(processes.is_alive(4321))

    @patch("apps.daemons.processes.psutil.Process", side_effect=psutil.AccessDenied(4321))
    def test_access_denied_counts_as_dead(self, mock_process):
        with self.assertLogs("apps.daemons.processes", level="WARNING"):
            self.assertFalse(processes.is_alive(4321))


class GetProcessTests(SimpleTestCase):
    """Tests for get_process."""

    @patch("apps.daemons.processes.psutil.Process")
    def test_returns_handle(self, mock_process):
        mock_process.return_value.status.return_value = psutil.STATUS_RUNNING
        self.assertIs(processes.get_process(4321), mock_process.return_value)

    @patch("apps.daemons.processes.psutil.Process", side_effect=psutil.NoSuchProcess(4321))
    def test_missing_process(self, mock_process):
        self.assertIsNone(processes.get_process(4321))


class CarriesMarkerTests(SimpleTestCase):
    """Tests for carries_marker."""

    def test_marker_must_be_a_whole_token(self):
        proc = MagicMock()
        proc.cmdline.return_value = ["python", "-m", "django", "run_daemon", "MAGE-TAB.FileChecker"]

        self.assertTrue(processes.carries_marker(proc, "MAGE-TAB.FileChecker"))
        self.assertFalse(processes.carries_marker(proc, "MAGE-TAB.File"))
        self.assertFalse(processes.carries_marker(proc, "GEO.FileChecker"))

    def test_unreadable_cmdline(self):
        proc = MagicMock()
        proc.cmdline.side_effect = psutil.AccessDenied(4321)

        self.assertFalse(processes.carries_marker(proc, "MAGE-TAB.FileChecker"))


class SendSignalTests(SimpleTestCase):
    """Tests for send_signal."""

    def test_delivered(self):
        proc = MagicMock()
        self.assertTrue(processes.send_signal(proc, 10))
        proc.send_signal.assert_called_once_with(10)

    def test_process_gone(self):
        proc = MagicMock()
        proc.send_signal.side_effect = psutil.NoSuchProcess(4321)
        self.assertFalse(processes.send_signal(proc, 10))

    def test_access_denied_propagates(self):
        proc = MagicMock()
        proc.send_signal.side_effect = psutil.AccessDenied(4321)
        with self.assertRaises(psutil.AccessDenied):
            processes.send_signal(proc, 10)


class ProcessAliveTests(SimpleTestCase):
    """Tests for process_alive."""

    def test_running_handle(self):
        proc = MagicMock()
        proc.is_running.return_value = True
        proc.status.return_value = psutil.STATUS_RUNNING

        self.assertTrue(processes.process_alive(proc))

    def test_reused_pid_counts_as_dead(self):
        # psutil reports is_running() False when the pid now belongs to a newer process.
        proc = MagicMock()
        proc.is_running.return_value = False

        self.assertFalse(processes.process_alive(proc))
        proc.status.assert_not_called()

    def test_zombie_handle(self):
        proc = MagicMock()
        proc.is_running.return_value = True
        proc.status.return_value = psutil.STATUS_ZOMBIE

        self.assertFalse(processes.process_alive(proc))

    def test_vanished_during_status(self):
        proc = MagicMock()
        proc.is_running.return_value = True
        proc.status.side_effect = psutil.NoSuchProcess(4321)

        self.assertFalse(processes.process_alive(proc))
