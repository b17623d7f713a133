"""Tests for the DaemonInstance model."""

from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.daemons.models import DaemonInstance, EndReason
from apps.pipelines.models import Pipeline


class DaemonInstanceTests(TestCase):
    """Tests for DaemonInstance."""

    def setUp(self):
        self.pipeline = Pipeline.objects.create(submission_type="MAGE-TAB", daemon_type="FileChecker")

    def _create(self, pid=4321, **kwargs):
        kwargs.setdefault("hostname", "host-a")
        return DaemonInstance.objects.create(
            pipeline=self.pipeline, daemon_type="FileChecker", pid=pid, **kwargs
        )

    def test_new_instance_is_running(self):
        instance = self._create()

        self.assertTrue(instance.running)
        self.assertEqual(instance.end_reason, "")
        self.assertIsNone(instance.end_time)
        self.assertIsNotNone(instance.start_time)

    def test_process_marker(self):
        self.assertEqual(self._create().process_marker, "MAGE-TAB.FileChecker")

    def test_mark_reconciled_closes_claim(self):
        instance = self._create()

        self.assertTrue(instance.mark_reconciled(EndReason.EXITED))

        instance.refresh_from_db()
        self.assertFalse(instance.running)
        self.assertEqual(instance.end_reason, EndReason.EXITED)
        self.assertIsNotNone(instance.end_time)

    def test_mark_reconciled_is_idempotent(self):
        instance = self._create()
        instance.mark_reconciled(EndReason.TERMINATED)
        instance.refresh_from_db()
        first_end = instance.end_time

        stale_copy = DaemonInstance.objects.get(pk=instance.pk)
        self.assertFalse(stale_copy.mark_reconciled(EndReason.STALE))

        instance.refresh_from_db()
        self.assertEqual(instance.end_reason, EndReason.TERMINATED)
        self.assertEqual(instance.end_time, first_end)

    def test_queryset_filters(self):
        running = self._create(pid=1)
        ended = self._create(pid=2)
        ended.mark_reconciled(EndReason.EXITED)
        self._create(pid=3, hostname="host-b")
        other = Pipeline.objects.create(submission_type="GEO", daemon_type="FileChecker")
        DaemonInstance.objects.create(pipeline=other, daemon_type="FileChecker", pid=4, hostname="host-a")

        qs = DaemonInstance.objects.running().on_host("host-a").for_pipelines(["MAGE-TAB"])

        self.assertEqual(list(qs), [running])

    def test_default_ordering_is_newest_first(self):
        older = self._create(pid=1, start_time=timezone.now() - timedelta(minutes=5))
        newer = self._create(pid=2)

        self.assertEqual(list(DaemonInstance.objects.all()), [newer, older])

    def test_str(self):
        instance = self._create()
        self.assertEqual(str(instance), "MAGE-TAB.FileChecker pid=4321 [running]")
