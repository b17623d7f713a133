"""Tests for pipeline selection."""

from django.test import TestCase

from apps.pipelines.models import Pipeline
from apps.pipelines.selection import PipelineNotFound, resolve_pipelines


class ResolvePipelinesTests(TestCase):
    """Tests for resolve_pipelines."""

    def setUp(self):
        self.magetab = Pipeline.objects.create(
            submission_type="MAGE-TAB", daemon_type="FileChecker", instances_to_start=2
        )
        self.geo = Pipeline.objects.create(
            submission_type="GEO", daemon_type="FileChecker", instances_to_start=0
        )
        self.prot = Pipeline.objects.create(
            submission_type="PROT", daemon_type="FileChecker", instances_to_start=1
        )

    def test_defaults_expand_instance_counts_in_pipeline_order(self):
        selections = resolve_pipelines()

        self.assertEqual(
            [s.label for s in selections],
            ["MAGE-TAB#1", "MAGE-TAB#2", "PROT#1"],
        )

    def test_defaults_skip_zero_instance_pipelines(self):
        names = {s.pipeline.submission_type for s in resolve_pipelines()}
        self.assertNotIn("GEO", names)

    def test_defaults_empty_when_nothing_configured(self):
        Pipeline.objects.update(instances_to_start=0)
        self.assertEqual(resolve_pipelines(), [])

    def test_selectors_start_one_instance_each(self):
        selections = resolve_pipelines(["GEO"])

        self.assertEqual(len(selections), 1)
        self.assertEqual(selections[0].pipeline, self.geo)
        self.assertEqual(selections[0].ordinal, 1)

    def test_selectors_keep_order_and_count_repeats(self):
        selections = resolve_pipelines(["PROT", "GEO", "PROT"])

        self.assertEqual([s.label for s in selections], ["PROT#1", "GEO#1", "PROT#2"])

    def test_unknown_selector_raises_before_anything_is_returned(self):
        with self.assertRaises(PipelineNotFound) as ctx:
            resolve_pipelines(["GEO", "NOPE", "ALSO-NOPE", "NOPE"])

        self.assertEqual(ctx.exception.selectors, ["NOPE", "ALSO-NOPE"])
        self.assertIn("Could not find pipeline with name NOPE", str(ctx.exception))

    def test_pipeline_not_found_is_a_lookup_error(self):
        with self.assertRaises(LookupError):
            resolve_pipelines(["missing"])
