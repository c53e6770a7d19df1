from __future__ import annotations

from typing import List, Sequence, Tuple

from workout_planner.models import ExerciseVideoIndex, WorkoutRecord


def split_table(values: Sequence[Sequence[str]]) -> Tuple[List[str], List[List[str]]]:
    """Split a values range into its header row and data rows."""
    if not values:
        return [], []
    header = [str(h) for h in values[0]]
    return header, [list(row) for row in values[1:]]


def _cell(row: Sequence[str], index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index])
    return ""


def map_rows(
    header_row: Sequence[str], data_rows: Sequence[Sequence[str]]
) -> List[WorkoutRecord]:
    """
    Zip header names onto each data row.

    Short rows are padded with empty strings and cells beyond the header are
    dropped, so every record has exactly the header's keys in header order.
    """
    return [
        {header: _cell(row, i) for i, header in enumerate(header_row)}
        for row in data_rows
    ]


def map_video_index(
    header_row: Sequence[str],
    data_rows: Sequence[Sequence[str]],
    name_column: str = "Exercise",
    link_column: str = "VideoLink",
) -> ExerciseVideoIndex:
    """Build exercise name -> video link. Later rows win over earlier ones."""
    try:
        name_idx = list(header_row).index(name_column)
        link_idx = list(header_row).index(link_column)
    except ValueError:
        return {}

    index: ExerciseVideoIndex = {}
    for row in data_rows:
        name = _cell(row, name_idx).strip()
        link = _cell(row, link_idx).strip()
        if not name or not link:
            continue
        index[name] = link
    return index
