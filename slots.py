from datetime import datetime, time, timedelta
from typing import Tuple

from errors import OutOfRangeError

# The day is cut into 12 slots of 2 hours, starting at local midnight
SLOT_COUNT = 12
SLOT_WIDTH = timedelta(hours=2)

_MIDNIGHT = datetime.combine(datetime.min.date(), time(0, 0))


def validate_slot(slot_index: int) -> int:
    # bool is an int subclass, but True is not a slot
    if isinstance(slot_index, bool) or not isinstance(slot_index, int):
        raise OutOfRangeError(f"Slot index must be an integer, got {slot_index!r}")
    if not 0 <= slot_index < SLOT_COUNT:
        raise OutOfRangeError(
            f"Slot index {slot_index} outside [0, {SLOT_COUNT})"
        )
    return slot_index


def all_slots() -> range:
    return range(SLOT_COUNT)


def slot_bounds(slot_index: int) -> Tuple[time, time]:
    """Start and end wall-clock times of a slot (end wraps to 00:00 for the last one)."""
    validate_slot(slot_index)
    start = _MIDNIGHT + slot_index * SLOT_WIDTH
    end = start + SLOT_WIDTH
    return start.time(), end.time()


def label_for(slot_index: int) -> str:
    start, end = slot_bounds(slot_index)
    return f"{start:%H:%M} - {end:%H:%M}"
