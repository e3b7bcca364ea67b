"""
Positional diff between two versions of a resource's execution flows.

Steps are compared index by index with no sequence alignment, so an inserted
early step marks every later index as modified.
"""
import logging
from typing import Dict, List, Sequence

from .models import ExecutionFlow, FlowDiff, FlowStatus, FlowStep, StepDiff, StepDiffKind

logger = logging.getLogger(__name__)


def steps_equal(a: FlowStep, b: FlowStep) -> bool:
    return (
        a.kind == b.kind
        and a.description == b.description
        and a.to_method == b.to_method
        and a.resolution_scope == b.resolution_scope
    )


def diff_steps(before: Sequence[FlowStep], after: Sequence[FlowStep]) -> List[StepDiff]:
    diffs: List[StepDiff] = []
    for i in range(max(len(before), len(after))):
        a = before[i] if i < len(before) else None
        b = after[i] if i < len(after) else None
        if a is not None and b is not None:
            kind = StepDiffKind.UNCHANGED if steps_equal(a, b) else StepDiffKind.MODIFIED
            diffs.append(StepDiff(kind=kind, before=a, after=b))
        elif a is not None:
            diffs.append(StepDiff(kind=StepDiffKind.REMOVED, before=a))
        else:
            diffs.append(StepDiff(kind=StepDiffKind.ADDED, after=b))
    return diffs


def diff_flows(flows_a: Sequence[ExecutionFlow], flows_b: Sequence[ExecutionFlow]) -> List[FlowDiff]:
    """Diff two flow sets keyed by entry point, in first-seen order (A, then B)."""
    by_a: Dict[str, ExecutionFlow] = {f.entry_point: f for f in flows_a}
    by_b: Dict[str, ExecutionFlow] = {f.entry_point: f for f in flows_b}

    order: List[str] = []
    for f in list(flows_a) + list(flows_b):
        if f.entry_point not in order:
            order.append(f.entry_point)

    diffs: List[FlowDiff] = []
    for entry in order:
        a, b = by_a.get(entry), by_b.get(entry)
        if a is None:
            diffs.append(FlowDiff(
                entry_point=entry,
                status=FlowStatus.ADDED,
                step_diffs=[StepDiff(kind=StepDiffKind.ADDED, after=s) for s in b.steps],
            ))
        elif b is None:
            diffs.append(FlowDiff(
                entry_point=entry,
                status=FlowStatus.REMOVED,
                step_diffs=[StepDiff(kind=StepDiffKind.REMOVED, before=s) for s in a.steps],
            ))
        else:
            step_diffs = diff_steps(a.steps, b.steps)
            changed = any(sd.kind != StepDiffKind.UNCHANGED for sd in step_diffs)
            diffs.append(FlowDiff(
                entry_point=entry,
                status=FlowStatus.MODIFIED if changed else FlowStatus.UNCHANGED,
                step_diffs=step_diffs,
            ))

    logger.debug(f"Diffed {len(diffs)} entry points")
    return diffs
