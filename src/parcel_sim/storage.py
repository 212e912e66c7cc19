"""
Storage collaborator: the interface the simulator reads snapshots from and
writes transitions to, plus an in-memory implementation.
"""
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional, Sequence

from .config import ActivePackage, Location, Package, Transition, TransitionKind
from .errors import StorageUnavailable
from .utils import setup_logging

logger = setup_logging()


class Store(ABC):

    @abstractmethod
    def current_time(self) -> datetime:
        """Latest recorded transition time, or the start time if none."""

    @abstractmethod
    def locations(self) -> list[Location]:
        pass

    @abstractmethod
    def active_packages(self) -> list[ActivePackage]:
        """Latest transition of every non-delivered package."""

    @abstractmethod
    def save(self, packages: Sequence[Package], transitions: Sequence[Transition]) -> None:
        """Persist new packages and transitions as one batch."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class MemoryStore(Store):
    """Keeps full package histories in memory."""

    def __init__(self, locations: Iterable[Location], start_time: Optional[datetime] = None):
        self._locations = {loc.location_id: loc for loc in locations}
        self._start_time = start_time or datetime.now()
        self._packages: dict[uuid.UUID, Package] = {}
        self._history: dict[uuid.UUID, list[Transition]] = defaultdict(list)
        self._closed = False

    def _check_open(self):
        if self._closed:
            raise StorageUnavailable("Store is closed")

    def current_time(self) -> datetime:
        self._check_open()
        recorded = [t.recorded_at for history in self._history.values() for t in history]
        return max(recorded) if recorded else self._start_time

    def locations(self) -> list[Location]:
        self._check_open()
        return list(self._locations.values())

    def active_packages(self) -> list[ActivePackage]:
        self._check_open()

        rows = []
        for package_id, history in self._history.items():
            latest = history[-1]
            if latest.kind == TransitionKind.DELIVERED:
                continue

            package = self._packages[package_id]
            rows.append(ActivePackage(
                package_id=package_id,
                method=package.method,
                destination_location_id=package.destination_location_id,
                longitude=latest.longitude,
                latitude=latest.latitude,
                transition_kind=latest.kind,
                transition_seq=latest.seq,
                transition_location_id=latest.location_id,
                transition_next_location_id=latest.next_location_id,
                transition_completes_at=latest.completes_at
            ))

        return rows

    def _validate_batch(self, packages: Sequence[Package], transitions: Sequence[Transition]) -> None:
        known = set(self._packages) | {p.package_id for p in packages}
        last_seq = {pid: h[-1].seq for pid, h in self._history.items()}
        last_kind = {pid: h[-1].kind for pid, h in self._history.items()}

        for package in packages:
            if package.package_id in self._packages:
                raise StorageUnavailable(f"Duplicate package {package.package_id}")

        for t in transitions:
            if t.package_id not in known:
                raise StorageUnavailable(f"Transition for unknown package {t.package_id}")
            if last_kind.get(t.package_id) == TransitionKind.DELIVERED:
                raise StorageUnavailable(f"Package {t.package_id} already delivered")

            expected = last_seq.get(t.package_id, 0) + 1
            if t.seq != expected:
                raise StorageUnavailable(
                    f"Package {t.package_id}: expected seq {expected}, got {t.seq}"
                )

            last_seq[t.package_id] = t.seq
            last_kind[t.package_id] = t.kind

    def save(self, packages: Sequence[Package], transitions: Sequence[Transition]) -> None:
        self._check_open()
        self._validate_batch(packages, transitions)

        for package in packages:
            self._packages[package.package_id] = package
        for t in transitions:
            self._history[t.package_id].append(t)

        logger.debug(f"Saved {len(packages)} packages and {len(transitions)} transitions")

    def close(self) -> None:
        self._closed = True

    def history(self, package_id: uuid.UUID) -> list[Transition]:
        return list(self._history.get(package_id, []))

    def packages(self) -> list[Package]:
        return list(self._packages.values())

    def transitions(self) -> list[Transition]:
        return [t for history in self._history.values() for t in history]

    def delivered_count(self) -> int:
        return sum(
            1 for history in self._history.values()
            if history[-1].kind == TransitionKind.DELIVERED
        )
