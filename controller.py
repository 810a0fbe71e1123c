"""
Client-side reservation controller.

Holds the catalog snapshot and the reservation view for one selected date and
mediates the book/cancel toggle. Every mutation is fire-and-confirm: the write
goes to the store, then the day's reservations are re-read. The view is only
ever replaced wholesale by a fetch; a failed write leaves it untouched.
Uniqueness of (system, date, slot) is enforced by the store, not here.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from errors import AuthError, FetchError, ReservationSystemError
from schemas import Identity, ReservationRead, SystemRead
from slots import all_slots, label_for, validate_slot

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]


class CellState(str, Enum):
    AVAILABLE = "available"
    RESERVED_BY_ME = "reserved"
    RESERVED_BY_OTHER = "taken"


class ToggleResult(str, Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Cell:
    system_id: str
    time_slot: int
    label: str
    state: CellState
    reservation_id: Optional[str] = None


@dataclass(frozen=True)
class SystemRow:
    system: SystemRead
    cells: Tuple[Cell, ...]


def parse_date(value: Union[date, str]) -> date:
    # datetime is a date subclass; keep only the calendar day
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}") from exc


class ReservationController:
    def __init__(self, client, active_date: Union[date, str, None] = None, notify: Optional[Notify] = None):
        self.client = client
        self.active_date: date = parse_date(active_date) if active_date is not None else date.today()
        self.systems: Tuple[SystemRead, ...] = ()
        self.reservations: Tuple[ReservationRead, ...] = ()
        # Date the reservation view was fetched for; None until the first fetch
        self.view_date: Optional[date] = None
        self._notify = notify

    def notify(self, level: str, message: str) -> None:
        logger.log(logging.ERROR if level == "error" else logging.INFO, message)
        if self._notify is not None:
            self._notify(level, message)

    @property
    def view_loaded(self) -> bool:
        return self.view_date == self.active_date

    @property
    def identity(self) -> Optional[Identity]:
        return self.client.current_identity()

    def _require_identity(self) -> Identity:
        identity = self.identity
        if identity is None:
            raise AuthError("Sign in to manage reservations")
        return identity

    async def start(self) -> None:
        """Load catalog and the active date's reservations for a fresh session."""
        self._require_identity()
        await self.refresh_catalog()
        await self.refresh_reservations()

    async def select_date(self, value: Union[date, str]) -> Tuple[ReservationRead, ...]:
        self.active_date = parse_date(value)
        self.reservations = ()
        self.view_date = None
        return await self.refresh_reservations()

    async def refresh_catalog(self) -> Tuple[SystemRead, ...]:
        try:
            systems = await self.client.list_resources()
        except ReservationSystemError:
            self.notify("error", "Failed to fetch systems")
            raise
        self.systems = tuple(systems)
        return self.systems

    async def refresh_reservations(self) -> Tuple[ReservationRead, ...]:
        requested = self.active_date
        try:
            reservations = await self.client.list_reservations(requested)
        except ReservationSystemError:
            self.notify("error", "Failed to fetch reservations")
            raise

        if self.active_date != requested:
            # select_date ran while this fetch was in flight
            logger.debug("Discarding reservations for %s, active date is now %s", requested, self.active_date)
            return self.reservations

        self.reservations = tuple(r for r in reservations if r.date == requested)
        self.view_date = requested
        return self.reservations

    def find_reservation(self, system_id: str, slot_index: int) -> Optional[ReservationRead]:
        for reservation in self.reservations:
            if (
                reservation.system_id == system_id
                and reservation.time_slot == slot_index
                and reservation.date == self.active_date
            ):
                return reservation
        return None

    def cell_state(self, system_id: str, slot_index: int) -> CellState:
        validate_slot(slot_index)
        reservation = self.find_reservation(system_id, slot_index)
        if reservation is None:
            return CellState.AVAILABLE
        identity = self.identity
        if identity is not None and reservation.user_id == identity.user_id:
            return CellState.RESERVED_BY_ME
        return CellState.RESERVED_BY_OTHER

    def grid(self) -> List[SystemRow]:
        rows = []
        for system in self.systems:
            cells = []
            for slot in all_slots():
                reservation = self.find_reservation(system.id, slot)
                cells.append(Cell(
                    system_id=system.id,
                    time_slot=slot,
                    label=label_for(slot),
                    state=self.cell_state(system.id, slot),
                    reservation_id=reservation.id if reservation else None,
                ))
            rows.append(SystemRow(system=system, cells=tuple(cells)))
        return rows

    async def toggle(self, system_id: str, slot_index: int) -> ToggleResult:
        """
        Book an empty cell or cancel the caller's own reservation in it.

        A cell held by someone else is rejected without contacting the store.
        Store errors (ConflictError, NotFoundError, ...) are re-raised and the
        view is left as it was; the next refresh is the authority.
        """
        identity = self._require_identity()
        validate_slot(slot_index)
        if not self.view_loaded:
            raise FetchError(f"Reservations for {self.active_date} are not loaded")
        existing = self.find_reservation(system_id, slot_index)

        if existing is not None and existing.user_id != identity.user_id:
            self.notify("error", "This slot is already reserved")
            return ToggleResult.REJECTED

        if existing is not None:
            try:
                await self.client.delete_reservation(existing.id)
            except ReservationSystemError:
                self.notify("error", "Failed to cancel reservation")
                raise
            self.notify("success", "Reservation cancelled")
            result = ToggleResult.CANCELLED
        else:
            try:
                await self.client.insert_reservation(system_id, self.active_date, slot_index)
            except ReservationSystemError:
                self.notify("error", "Failed to make reservation")
                raise
            self.notify("success", "Reservation confirmed")
            result = ToggleResult.BOOKED

        try:
            await self.refresh_reservations()
        except ReservationSystemError:
            # The write went through; the view stays stale until the next refresh
            logger.warning("Refresh after %s failed, view is stale", result.value)
        return result
