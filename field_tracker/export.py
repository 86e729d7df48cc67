"""Excel export of a trace snapshot (trace rows plus a summary sheet)."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Any, List, Sequence

import numpy as np
import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .geo import pairwise_distances_km
from .models import Point, TraceSnapshot
from .utils import format_hhmmss

TRACE_SHEET = "Trace"
SUMMARY_SHEET = "Summary"
EXCEL_DATETIME_FORMAT = "yyyy-mm-dd hh:mm:ss"
AUTOSIZE_MIN_WIDTH = 6
AUTOSIZE_MAX_WIDTH = 40
AUTOSIZE_PADDING = 2

TRACE_COLUMNS = [
    "Timestamp (epoch s)",
    "Time (UTC)",
    "Latitude",
    "Longitude",
    "Segment Distance (km)",
    "Cumulative Distance (km)",
]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFFFC04D")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

PathInput = str | Path | PathLike[str]

LOGGER = logging.getLogger(__name__)

__all__ = ["summary_rows", "trace_to_frame", "write_trace_workbook"]


def trace_to_frame(trace: Sequence[Point]) -> pd.DataFrame:
    """Return one row per trace point with per-segment and running distance."""

    if not trace:
        return pd.DataFrame(columns=TRACE_COLUMNS)
    segments = np.concatenate(
        ([0.0], pairwise_distances_km([p.lat for p in trace], [p.lon for p in trace]))
    )
    timestamps = [p.ts for p in trace]
    return pd.DataFrame(
        {
            TRACE_COLUMNS[0]: timestamps,
            TRACE_COLUMNS[1]: pd.to_datetime(timestamps, unit="s"),
            TRACE_COLUMNS[2]: [p.lat for p in trace],
            TRACE_COLUMNS[3]: [p.lon for p in trace],
            TRACE_COLUMNS[4]: np.round(segments, 4),
            TRACE_COLUMNS[5]: np.round(np.cumsum(segments), 4),
        },
        columns=TRACE_COLUMNS,
    )


def summary_rows(snapshot: TraceSnapshot) -> List[dict[str, Any]]:
    stats = snapshot.stats
    latest = snapshot.latest
    speed = stats.average_speed_mps
    rows: List[dict[str, Any]] = [
        {"Metric": "Device", "Value": snapshot.device_id},
        {"Metric": "Points", "Value": stats.point_count},
        {"Metric": "Path Distance (km)", "Value": round(stats.path_distance_km, 3)},
        {
            "Metric": "Average Speed (m/s)",
            "Value": round(speed, 2) if speed is not None else None,
        },
        {"Metric": "Tracking Duration (s)", "Value": stats.tracking_duration_sec},
        {"Metric": "Last Update", "Value": format_hhmmss(snapshot.last_update_epoch)},
        {
            "Metric": "Source",
            "Value": snapshot.source.value if snapshot.source else None,
        },
    ]
    if latest is not None:
        rows.append({"Metric": "Battery (%)", "Value": latest.battery})
        rows.append({"Metric": "SOS", "Value": "YES" if latest.sos else "no"})
    if snapshot.error:
        rows.append({"Metric": "Error", "Value": snapshot.error})
    return rows


def _style_header_row(ws: Worksheet, max_col: int) -> None:
    for col_idx in range(1, max_col + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _autosize(ws: Worksheet) -> None:
    for col_cells in ws.columns:
        col_letter = getattr(col_cells[0], "column_letter", None)
        if not col_letter:
            continue
        max_len = max(
            (len(str(cell.value)) for cell in col_cells if cell.value is not None),
            default=0,
        )
        ws.column_dimensions[col_letter].width = min(
            AUTOSIZE_MAX_WIDTH, max(AUTOSIZE_MIN_WIDTH, max_len + AUTOSIZE_PADDING)
        )


def write_trace_workbook(filepath: PathInput, snapshot: TraceSnapshot) -> Path:
    """Write ``Trace`` and ``Summary`` sheets for ``snapshot`` and return the path."""

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    trace_df = trace_to_frame(snapshot.trace)
    summary_df = pd.DataFrame(summary_rows(snapshot), columns=["Metric", "Value"])
    with pd.ExcelWriter(
        path, engine="openpyxl", datetime_format=EXCEL_DATETIME_FORMAT
    ) as writer:
        for sheet_name, frame in ((TRACE_SHEET, trace_df), (SUMMARY_SHEET, summary_df)):
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
            ws = writer.sheets[sheet_name]
            _style_header_row(ws, len(frame.columns))
            _autosize(ws)
    LOGGER.info(
        "Trace workbook saved to %s (points=%d device=%s)",
        path,
        len(trace_df),
        snapshot.device_id,
    )
    return path
