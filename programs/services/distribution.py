"""Fan a week's task templates out across the days of that week."""
import copy
import math
from typing import Dict, List, Optional

from .task_templates import to_instance_task

WEEK_SOURCE = "week"

SPREAD = "spread"
ALL_DAYS = "all_days"
FIRST_DAY = "first_day"

DISTRIBUTION_ALIASES = {
    "spread": SPREAD,
    "repeat-daily": ALL_DAYS,
    "all_days": ALL_DAYS,
    "daily": ALL_DAYS,
    "first_day": FIRST_DAY,
}


def normalize_distribution(value) -> str:
    """Map any accepted distribution spelling onto spread / all_days / first_day.

    Object form ``{"type": ...}`` is accepted too; unknown values fall back to spread.
    """
    if isinstance(value, dict):
        value = value.get("type")
    return DISTRIBUTION_ALIASES.get(value or SPREAD, SPREAD)


def spread_counts(task_count: int, day_count: int) -> List[int]:
    """How many tasks each day receives under the spread policy.

    Each day takes ceil(remaining_tasks / remaining_days), so totals always
    match and no day receives more than ceil(task_count / day_count).

    Example:
        >>> spread_counts(7, 5)
        [2, 2, 1, 1, 1]
    """
    counts = []
    remaining = task_count
    for offset in range(day_count):
        take = math.ceil(remaining / (day_count - offset)) if remaining > 0 else 0
        counts.append(take)
        remaining -= take
    return counts


def _assign_by_policy(tasks: List[Dict], day_count: int, policy: str) -> List[List[Dict]]:
    if policy == ALL_DAYS:
        return [list(tasks) for _ in range(day_count)]
    if policy == FIRST_DAY:
        return [list(tasks)] + [[] for _ in range(day_count - 1)]

    assignments = []
    cursor = 0
    for count in spread_counts(len(tasks), day_count):
        assignments.append(tasks[cursor:cursor + count])
        cursor += count
    return assignments


def _tagged_positions(day_tag, day_count: int) -> List[int]:
    """0-based day positions named by a numeric day tag (1-based, int/str or a list of them)."""
    values = day_tag if isinstance(day_tag, list) else [day_tag]
    positions = []
    for value in values:
        if isinstance(value, bool):
            continue
        if isinstance(value, str) and value.isdigit():
            value = int(value)
        if isinstance(value, int) and 1 <= value <= day_count and value - 1 not in positions:
            positions.append(value - 1)
    return positions


def assign_tasks_to_days(weekly_tasks: List[Dict], day_count: int, distribution: Optional[str]) -> List[List[Dict]]:
    """
    Return, per day position, the templates that land on that day.

    A task's ``day_tag`` overrides the week policy for that task:

        "daily"           -> every day
        "spread"          -> spread with the other spread-tagged tasks
        3 / "3" / [1, 3]  -> those day positions of the week (1-based)
        missing / "auto"  -> the week's distribution policy

    Each day lists daily tasks first, then day-specific, spread-tagged and
    policy-placed tasks.
    """
    if day_count <= 0:
        return []

    daily, spread, auto = [], [], []
    specific = [[] for _ in range(day_count)]
    for task in weekly_tasks:
        day_tag = task.get("day_tag")
        if day_tag == "daily":
            daily.append(task)
        elif day_tag == "spread":
            spread.append(task)
        elif day_tag in (None, "", "auto"):
            auto.append(task)
        else:
            positions = _tagged_positions(day_tag, day_count)
            if not positions:
                auto.append(task)
            for position in positions:
                specific[position].append(task)

    groups = [
        [list(daily) for _ in range(day_count)],
        specific,
        _assign_by_policy(spread, day_count, SPREAD),
        _assign_by_policy(auto, day_count, normalize_distribution(distribution)),
    ]
    return [[task for group in groups for task in group[position]] for position in range(day_count)]


def distribute_week_tasks(week: Dict, weekly_tasks: List[Dict], distribution: Optional[str]) -> Dict:
    """
    Replace the week-sourced tasks on each day of ``week`` with ``weekly_tasks``
    laid out according to ``distribution``.

    Tasks that came from other sources (coach-added day tasks) are kept and stay
    ahead of the week tasks, unless they carry the id of a week template; the
    template's fresh copy replaces them so an id appears once per day. An empty
    ``weekly_tasks`` clears week tasks only.
    """
    updated = copy.deepcopy(week)
    days = updated.get("days") or []
    assignments = assign_tasks_to_days(weekly_tasks, len(days), distribution)
    template_ids = {task.get("id") for task in weekly_tasks if task.get("id")}

    for day, assigned in zip(days, assignments):
        kept = [
            task for task in (day.get("tasks") or [])
            if task.get("source") != WEEK_SOURCE and task.get("id") not in template_ids
        ]
        day["tasks"] = kept + [to_instance_task(task, source=WEEK_SOURCE) for task in assigned]

    updated["days"] = days
    return updated
