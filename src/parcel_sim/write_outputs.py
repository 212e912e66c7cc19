"""
Write simulation reports to an Excel workbook.
"""
from pathlib import Path

import pandas as pd

from .utils import setup_logging

logger = setup_logging()

SHEET_ORDER = ["summary", "packages", "transitions", "ticks", "errors"]
MAX_COLUMN_WIDTH = 50


def _autosize_columns(worksheet, df: pd.DataFrame) -> None:
    for i, col in enumerate(df.columns):
        longest = df[col].map(lambda v: len(str(v))).max() if len(df) > 0 else 0
        worksheet.set_column(i, i, min(max(longest, len(col)) + 2, MAX_COLUMN_WIDTH))


def write_outputs(reports: dict[str, pd.DataFrame], output_path: str) -> None:
    """Write reports one sheet each, known sheets first, header row frozen."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    ordered = [name for name in SHEET_ORDER if name in reports]
    ordered += [name for name in reports if name not in SHEET_ORDER]

    with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
        for sheet_name in ordered:
            df = reports[sheet_name]
            df.to_excel(writer, sheet_name=sheet_name, index=False)

            worksheet = writer.sheets[sheet_name]
            worksheet.freeze_panes(1, 0)
            _autosize_columns(worksheet, df)

    logger.info(f"Wrote {len(ordered)} sheets to {output_path}")
