"""
Tick orchestrator: drives the simulation one tick at a time.

Each tick:
1. Read the snapshot (locations, active packages) from the store
2. Advance every active package, sharded across worker threads with one
   random generator per worker
3. Generate new packages until max_packages is reached
4. Save new packages and transitions to the store as one batch

Per-package failures are collected in the TickReport and the package is not
advanced again. A store failure aborts the tick before anything is saved and
leaves the orchestrator ready to retry the same tick.
"""
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional, Sequence

import numpy as np

from .config import (
    ActivePackage, Location, Package, SimulationConfig, Transition, TransitionKind
)
from .errors import InvalidCoordinate, StorageUnavailable, UnroutablePackage
from .generator import generate_packages, packages_this_tick, worker_rngs
from .routing import NextStopFn, next_stop_for_policy
from .state_machine import advance
from .storage import Store
from .utils import setup_logging

logger = setup_logging()


@dataclass
class TickReport:
    tick: int
    now: datetime
    new_packages: list[Package] = field(default_factory=list)
    transitions: list[Transition] = field(default_factory=list)
    errors: dict[uuid.UUID, Exception] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def delivered(self) -> list[Transition]:
        return [t for t in self.transitions if t.kind == TransitionKind.DELIVERED]

    @property
    def delivered_count(self) -> int:
        return len(self.delivered)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass
class _ShardResult:
    transitions: list[Transition] = field(default_factory=list)
    errors: dict[uuid.UUID, Exception] = field(default_factory=dict)
    cancelled: bool = False


class TickOrchestrator:

    def __init__(
            self,
            store: Store,
            config: SimulationConfig,
            next_stop: Optional[NextStopFn] = None,
            packages_generated: int = 0,
            packages_delivered: int = 0,
            tick: int = 0
    ):
        self.store = store
        self.config = config
        self.next_stop = next_stop or next_stop_for_policy(config.hub_policy)

        self.tick = tick
        self.packages_generated = packages_generated
        self.packages_delivered = packages_delivered
        self.unroutable: dict[uuid.UUID, Exception] = {}
        self.exhausted = False

    @property
    def generation_done(self) -> bool:
        return 0 < self.config.max_packages <= self.packages_generated

    @property
    def finished(self) -> bool:
        if 0 < self.config.max_delivered <= self.packages_delivered:
            return True
        return self.exhausted

    def _read_snapshot(self) -> tuple[dict[int, Location], list[ActivePackage]]:
        try:
            locations = {loc.location_id: loc for loc in self.store.locations()}
            active = self.store.active_packages()
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to read snapshot: {e}") from e

        return locations, active

    def _save(self, packages: Sequence[Package], transitions: Sequence[Transition]) -> None:
        try:
            self.store.save(packages, transitions)
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to save tick: {e}") from e

    def _advance_shard(
            self,
            shard: Sequence[ActivePackage],
            now: datetime,
            rng: np.random.Generator,
            locations: Mapping[int, Location],
            cancel: Optional[threading.Event]
    ) -> _ShardResult:
        result = _ShardResult()

        for package in shard:
            if cancel is not None and cancel.is_set():
                result.cancelled = True
                break

            try:
                transition = advance(package, now, self.config, rng, locations, self.next_stop)
            except (UnroutablePackage, InvalidCoordinate) as e:
                result.errors[package.package_id] = e
                continue

            if transition is not None:
                result.transitions.append(transition)

        return result

    def _advance_all(
            self,
            active: list[ActivePackage],
            now: datetime,
            rngs: list[np.random.Generator],
            locations: Mapping[int, Location],
            cancel: Optional[threading.Event]
    ) -> list[_ShardResult]:
        workers = len(rngs)
        ordered = sorted(active, key=lambda p: p.package_id)
        shards = [ordered[i::workers] for i in range(workers)]

        if workers == 1:
            return [self._advance_shard(shards[0], now, rngs[0], locations, cancel)]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._advance_shard, shard, now, rng, locations, cancel)
                for shard, rng in zip(shards, rngs)
            ]
            return [f.result() for f in futures]

    def run_tick(self, now: datetime, cancel: Optional[threading.Event] = None) -> TickReport:
        """
        Run one tick at simulated time now.

        Raises:
            StorageUnavailable: the snapshot could not be read or the batch
                could not be saved; nothing from this tick is persisted
        """
        report = TickReport(tick=self.tick, now=now)
        workers = max(1, self.config.workers)

        locations, active = self._read_snapshot()
        active = [p for p in active if p.package_id not in self.unroutable]

        # last generator is reserved for package generation
        rngs = worker_rngs(self.config.seed, self.tick, workers + 1, self.packages_generated)

        for shard in self._advance_all(active, now, rngs[:workers], locations, cancel):
            report.transitions.extend(shard.transitions)
            report.errors.update(shard.errors)
            report.cancelled = report.cancelled or shard.cancelled

        if not report.cancelled and not self.generation_done:
            gen_rng = rngs[workers]
            max_packages = self.config.max_packages if self.config.max_packages > 0 else None
            count = packages_this_tick(
                self.config.packages_per_tick,
                gen_rng,
                self.packages_generated,
                max_packages
            )
            report.new_packages, pending = generate_packages(
                count, list(locations.values()), self.config, gen_rng, now
            )
            report.transitions.extend(pending)

        self._save(report.new_packages, report.transitions)

        self.packages_generated += len(report.new_packages)
        self.packages_delivered += report.delivered_count
        self.unroutable.update(report.errors)
        self.tick += 1

        still_active = len(active) - report.delivered_count - report.error_count
        self.exhausted = (
            self.generation_done
            and not report.new_packages
            and still_active <= 0
        )

        for package_id, error in report.errors.items():
            logger.warning(f"Tick {report.tick}: package {package_id} excluded: {error}")

        logger.info(
            f"Tick {report.tick} @ {now:%Y-%m-%d %H:%M}: "
            f"{len(active)} active, {len(report.new_packages)} new, "
            f"{len(report.transitions)} transitions, {report.delivered_count} delivered, "
            f"{report.error_count} errors"
            + (" (cancelled)" if report.cancelled else "")
        )

        return report

    def run(
            self,
            max_ticks: Optional[int] = None,
            cancel: Optional[threading.Event] = None
    ) -> list[TickReport]:
        """
        Run ticks until max_delivered packages are delivered, the network is
        exhausted, max_ticks have run, or cancel is set.
        """
        try:
            now = self.store.current_time()
        except StorageUnavailable:
            raise
        except Exception as e:
            raise StorageUnavailable(f"Failed to read current time: {e}") from e

        reports = []
        while not self.finished:
            if max_ticks is not None and len(reports) >= max_ticks:
                break
            if cancel is not None and cancel.is_set():
                break

            report = self.run_tick(now, cancel)
            reports.append(report)
            if report.cancelled:
                break

            now += self.config.tick_duration

        logger.info(
            f"Run stopped after {len(reports)} ticks: "
            f"{self.packages_generated} packages generated, "
            f"{self.packages_delivered} delivered, {len(self.unroutable)} unroutable"
        )
        return reports
