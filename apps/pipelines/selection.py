"""
Resolve which pipeline daemons an invocation should start.

Explicit selectors must all resolve before anything is started; without
selectors every pipeline with a non-zero instance count is expanded into that
many instances.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from apps.pipelines.models import Pipeline


class PipelineNotFound(LookupError):
    """One or more requested pipeline names do not exist."""

    def __init__(self, selectors: Sequence[str]):
        self.selectors = list(selectors)
        super().__init__(f"Could not find pipeline with name {', '.join(self.selectors)}")


@dataclass(frozen=True)
class PipelineSelection:
    """One daemon instance to start: a pipeline and its 1-based ordinal."""

    pipeline: Pipeline
    ordinal: int

    @property
    def label(self) -> str:
        return f"{self.pipeline.submission_type}#{self.ordinal}"


def resolve_pipelines(selectors: Sequence[str] = ()) -> list[PipelineSelection]:
    """
    Return the ordered list of daemon instances to start.

    Args:
        selectors: Pipeline names given on the command line. A name may be
            repeated to start several instances of the same pipeline.

    Returns:
        PipelineSelection entries in selector order, or in pipeline order when
        no selectors are given.

    Raises:
        PipelineNotFound: If any selector does not name a known pipeline.
    """
    if selectors:
        return _resolve_selected(selectors)

    selections = []
    for pipeline in Pipeline.objects.filter(instances_to_start__gt=0).order_by("id"):
        for ordinal in range(1, pipeline.instances_to_start + 1):
            selections.append(PipelineSelection(pipeline=pipeline, ordinal=ordinal))
    return selections


def _resolve_selected(selectors: Sequence[str]) -> list[PipelineSelection]:
    known = {p.submission_type: p for p in Pipeline.objects.filter(submission_type__in=set(selectors))}

    missing = [name for name in dict.fromkeys(selectors) if name not in known]
    if missing:
        raise PipelineNotFound(missing)

    seen: Counter[str] = Counter()
    selections = []
    for name in selectors:
        seen[name] += 1
        selections.append(PipelineSelection(pipeline=known[name], ordinal=seen[name]))
    return selections
