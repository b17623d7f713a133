"""Tests for the worker framework and the built-in FileChecker."""

import signal
import tempfile
from pathlib import Path

from django.test import TestCase
from django.test.utils import override_settings

from apps.daemons.exceptions import WorkerTypeNotAvailable
from apps.daemons.workers import (
    WORKER_REGISTRY,
    BaseWorker,
    FileChecker,
    RunMode,
    WorkerConfig,
    get_available_workers,
    get_worker_class,
)

LEVELS = {"DEBUG": 1, "INFO": 2, "WARN": 4, "ERROR": 8, "FATAL": 16}


class CountdownWorker(BaseWorker):
    """Handles one unit per poll until its queue is empty."""

    name = "Countdown"

    def __init__(self, config, sleep=None, queue=3):
        super().__init__(config, sleep=sleep or (lambda seconds: None))
        self.queue = queue
        self.pid_published = None
        self.events = []

    def setup(self):
        self.events.append("setup")

    def poll(self):
        self.pid_published = Path(self.config.pidfile_path).exists()
        if not self.queue:
            return 0
        self.queue -= 1
        return 1

    def teardown(self):
        self.events.append("teardown")


class FailingWorker(CountdownWorker):
    def poll(self):
        raise RuntimeError("broken poll")


class WorkerRegistryTests(TestCase):
    """Tests for worker type resolution."""

    def test_file_checker_registered(self):
        self.assertIs(WORKER_REGISTRY["FileChecker"], FileChecker)
        self.assertIs(get_worker_class("FileChecker"), FileChecker)

    def test_unknown_worker_type(self):
        with self.assertRaises(WorkerTypeNotAvailable) as ctx:
            get_worker_class("NoSuchChecker")

        self.assertEqual(ctx.exception.worker_type, "NoSuchChecker")
        self.assertIn("FileChecker", ctx.exception.available)

    @override_settings(
        DAEMON_WORKER_CLASSES={"Countdown": "apps.daemons._tests.test_workers.CountdownWorker"}
    )
    def test_configured_worker_class(self):
        self.assertIs(get_worker_class("Countdown"), CountdownWorker)
        self.assertEqual(get_available_workers(), ["Countdown", "FileChecker"])

    @override_settings(DAEMON_WORKER_CLASSES={"Broken": "apps.daemons._tests.no_such_module.Worker"})
    def test_configured_path_that_does_not_import(self):
        with self.assertRaises(WorkerTypeNotAvailable):
            get_worker_class("Broken")

    @override_settings(DAEMON_WORKER_CLASSES={"NotAWorker": "apps.daemons._tests.test_workers.LEVELS"})
    def test_configured_path_that_is_not_a_worker(self):
        with self.assertRaises(WorkerTypeNotAvailable):
            get_worker_class("NotAWorker")


class WorkerConfigTests(TestCase):
    """Tests for WorkerConfig."""

    def test_marker(self):
        config = WorkerConfig("MAGE-TAB", "FileChecker", Path("/tmp/x.pid"))
        self.assertEqual(config.marker, "MAGE-TAB.FileChecker")

    def test_from_mapping_coerces_types(self):
        config = WorkerConfig.from_mapping(
            {
                "pipeline_name": "MAGE-TAB",
                "worker_type": "FileChecker",
                "pidfile_path": "/tmp/x.pid",
                "work_dir": "/srv/submissions",
                "run_mode": "once",
            }
        )

        self.assertEqual(config.pidfile_path, Path("/tmp/x.pid"))
        self.assertEqual(config.work_dir, Path("/srv/submissions"))
        self.assertIs(config.run_mode, RunMode.ONCE)

    def test_to_options(self):
        config = WorkerConfig(
            "MAGE-TAB",
            "FileChecker",
            Path("/tmp/x.pid"),
            polling_interval=30.0,
            severity_threshold=12,
            accession_prefix="E-MTAB-",
            run_mode=RunMode.ONCE,
            admin_email="curators@example.org",
            termination_signal=signal.SIGUSR1,
        )
        options = config.to_options()

        def value(flag):
            return options[options.index(flag) + 1]

        self.assertEqual(value("--pipeline"), "MAGE-TAB")
        self.assertEqual(value("--polling-interval"), "30")
        self.assertEqual(value("--severity-threshold"), "12")
        self.assertEqual(value("--accession-prefix"), "E-MTAB-")
        self.assertEqual(value("--run-mode"), "once")
        self.assertEqual(value("--stop-signal"), str(int(signal.SIGUSR1)))
        self.assertEqual(value("--admin-email"), "curators@example.org")
        self.assertNotIn("--work-dir", options)


class BaseWorkerRunTests(TestCase):
    """Tests for the BaseWorker run loop."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.pidfile = Path(self.tmp.name) / "MAGE-TAB.Countdown.pid"

    def _config(self, **kwargs):
        kwargs.setdefault("run_mode", RunMode.ONCE)
        kwargs.setdefault("handshake_timeout", 0.5)
        return WorkerConfig("MAGE-TAB", "Countdown", self.pidfile, **kwargs)

    def test_once_mode_drains_queue_and_exits(self):
        worker = CountdownWorker(self._config(), queue=3)

        handled = worker.run()

        self.assertEqual(handled, 3)
        self.assertEqual(worker.events, ["setup", "teardown"])
        self.assertTrue(worker.pid_published)
        self.assertFalse(self.pidfile.exists())

    def test_stop_request_ends_forever_mode(self):
        sleeps = []
        worker = CountdownWorker(self._config(run_mode=RunMode.FOREVER, polling_interval=3.0), queue=0)

        def sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 2:
                worker.request_stop(signal.SIGUSR1)

        worker._sleep = sleep

        self.assertEqual(worker.run(), 0)
        self.assertTrue(worker.stop_requested)
        self.assertEqual(sleeps[:2], [1.0, 1.0])

    def test_poll_errors_are_logged_not_raised(self):
        worker = FailingWorker(self._config())

        with self.assertLogs("apps.daemons.workers.base", level="ERROR"):
            self.assertEqual(worker.run(), 0)

        self.assertEqual(worker.events, ["setup", "teardown"])

    def test_restores_previous_signal_handler(self):
        previous = signal.getsignal(signal.SIGUSR1)
        CountdownWorker(self._config(), queue=0).run()

        self.assertEqual(signal.getsignal(signal.SIGUSR1), previous)

    def test_configure_accepts_mapping(self):
        worker = CountdownWorker.configure(
            {"pipeline_name": "MAGE-TAB", "worker_type": "Countdown", "pidfile_path": str(self.pidfile)}
        )

        self.assertIsInstance(worker, CountdownWorker)
        self.assertEqual(worker.config.pidfile_path, self.pidfile)

    def test_configure_defaults_worker_type_to_class_name(self):
        worker = FileChecker.configure(
            {
                "polling_interval": 30,
                "pipeline_name": "MAGE-TAB",
                "severity_threshold": 12,
                "accession_prefix": "E-MTAB-",
                "pidfile_path": str(self.pidfile),
                "run_mode": "once",
            }
        )

        self.assertIsInstance(worker, FileChecker)
        self.assertEqual(worker.config.worker_type, "FileChecker")
        self.assertEqual(worker.config.marker, "MAGE-TAB.FileChecker")
        self.assertEqual(worker.config.severity_threshold, 12)
        self.assertIs(worker.config.run_mode, RunMode.ONCE)


class FileCheckerTests(TestCase):
    """Tests for the FileChecker worker."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.work_dir = Path(self.tmp.name)
        self.config = WorkerConfig(
            "MAGE-TAB",
            "FileChecker",
            self.work_dir / "x.pid",
            severity_threshold=LEVELS["ERROR"],
            accession_prefix="E-MTAB-",
            run_mode=RunMode.ONCE,
            work_dir=self.work_dir,
            handshake_timeout=0.0,
            severity_levels=LEVELS,
        )
        self.checker = FileChecker(self.config, sleep=lambda seconds: None)
        self.checker.setup()

    def _drop(self, name, data):
        path = self.checker.incoming / name
        path.write_bytes(data)
        return path

    def test_setup_creates_directories(self):
        root = self.work_dir / "MAGE-TAB"
        for name in ("incoming", "accepted", "rejected"):
            self.assertTrue((root / name).is_dir())

    def test_setup_requires_work_dir(self):
        self.config.work_dir = None
        with self.assertRaises(ValueError):
            FileChecker(self.config).setup()

    def test_check_file_issues(self):
        empty = self._drop("E-MTAB-1.idf", b"")
        binary = self._drop("E-MTAB-2.idf", b"\xff\xfe\x00")
        misnamed = self._drop("other.idf", b"ok")

        self.assertEqual([i.level for i in self.checker.check_file(empty)], ["ERROR"])
        self.assertEqual([i.level for i in self.checker.check_file(binary)], ["ERROR"])
        self.assertEqual([i.level for i in self.checker.check_file(misnamed)], ["WARN"])

    def test_poll_triages_by_threshold(self):
        self._drop("E-MTAB-1.idf", b"Investigation Title\tx\n")
        self._drop("E-MTAB-2.idf", b"")
        self._drop("misnamed.idf", b"text")
        self._drop(".hidden", b"")

        self.assertEqual(self.checker.poll(), 3)

        accepted = sorted(p.name for p in self.checker.accepted.iterdir())
        rejected = sorted(p.name for p in self.checker.rejected.iterdir())
        self.assertEqual(accepted, ["E-MTAB-1.idf", "misnamed.idf"])
        self.assertEqual(rejected, ["E-MTAB-2.idf"])
        self.assertEqual(self.checker.poll(), 0)

    def test_warn_threshold_rejects_misnamed_files(self):
        self.config.severity_threshold = LEVELS["WARN"] | LEVELS["ERROR"]
        self._drop("misnamed.idf", b"text")

        self.checker.poll()

        self.assertTrue((self.checker.rejected / "misnamed.idf").exists())
