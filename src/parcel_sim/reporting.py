"""Report generation for simulation outputs."""
from collections import defaultdict

import pandas as pd

from .config import TransitionKind
from .orchestrator import TickReport
from .storage import MemoryStore
from .utils import format_duration_hours, setup_logging

logger = setup_logging()


class ReportBuilder:

    def __init__(self, store: MemoryStore, tick_reports: list[TickReport]):
        self.store = store
        self.tick_reports = tick_reports

    def build_packages_df(self) -> pd.DataFrame:
        rows = []
        for package in self.store.packages():
            history = self.store.history(package.package_id)
            latest = history[-1] if history else None
            rows.append({
                "package_id": str(package.package_id),
                "method": package.method.value,
                "origin_location_id": package.origin_location_id,
                "destination_location_id": package.destination_location_id,
                "created_at": package.created_at,
                "status": latest.kind.value if latest else None,
                "transitions": len(history),
                "legs": sum(1 for t in history if t.kind == TransitionKind.IN_TRANSIT),
            })

        return pd.DataFrame(rows)

    def build_transitions_df(self) -> pd.DataFrame:
        rows = []
        for t in self.store.transitions():
            rows.append({
                "package_id": str(t.package_id),
                "seq": t.seq,
                "kind": t.kind.value,
                "location_id": t.location_id,
                "next_location_id": t.next_location_id,
                "mode": t.mode.value if t.mode else None,
                "recorded_at": t.recorded_at,
                "completes_at": t.completes_at,
                "longitude": t.longitude,
                "latitude": t.latitude,
            })

        df = pd.DataFrame(rows)
        if len(df) > 0:
            df = df.sort_values(["package_id", "seq"]).reset_index(drop=True)
        return df

    def build_ticks_df(self) -> pd.DataFrame:
        rows = []
        for report in self.tick_reports:
            rows.append({
                "tick": report.tick,
                "now": report.now,
                "new_packages": len(report.new_packages),
                "transitions": len(report.transitions),
                "delivered": report.delivered_count,
                "errors": report.error_count,
                "cancelled": report.cancelled,
            })

        return pd.DataFrame(rows)

    def build_errors_df(self) -> pd.DataFrame:
        rows = []
        for report in self.tick_reports:
            for package_id, error in report.errors.items():
                rows.append({
                    "tick": report.tick,
                    "package_id": str(package_id),
                    "error_type": type(error).__name__,
                    "message": str(error),
                })

        return pd.DataFrame(rows, columns=["tick", "package_id", "error_type", "message"])

    def build_summary_df(self) -> pd.DataFrame:
        """Delivered counts and mean door-to-door hours by delivery method."""
        transit_hours = defaultdict(list)
        counts = defaultdict(int)

        for package in self.store.packages():
            method = package.method.value
            counts[method] += 1

            history = self.store.history(package.package_id)
            if history and history[-1].kind == TransitionKind.DELIVERED:
                transit_hours[method].append(
                    format_duration_hours(history[-1].recorded_at - package.created_at)
                )

        rows = []
        for method in sorted(counts):
            hours = transit_hours[method]
            rows.append({
                "method": method,
                "total_packages": counts[method],
                "delivered_packages": len(hours),
                "pct_delivered": 100 * len(hours) / counts[method],
                "avg_transit_hours": sum(hours) / len(hours) if hours else None,
            })

        return pd.DataFrame(rows)


def build_all_reports(store: MemoryStore, tick_reports: list[TickReport]) -> dict[str, pd.DataFrame]:
    """Build all report DataFrames."""
    builder = ReportBuilder(store, tick_reports)

    reports = {
        "summary": builder.build_summary_df(),
        "packages": builder.build_packages_df(),
        "transitions": builder.build_transitions_df(),
        "ticks": builder.build_ticks_df(),
        "errors": builder.build_errors_df(),
    }

    logger.info(
        f"Built reports: {len(reports['packages'])} packages, "
        f"{len(reports['transitions'])} transitions over {len(reports['ticks'])} ticks"
    )
    return reports
