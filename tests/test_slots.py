from datetime import time

import pytest

from errors import OutOfRangeError
from slots import SLOT_COUNT, all_slots, label_for, slot_bounds, validate_slot


def test_first_and_last_labels():
    assert label_for(0) == "00:00 - 02:00"
    assert label_for(11) == "22:00 - 00:00"


def test_labels_cover_the_day_without_gaps():
    labels = [label_for(i) for i in all_slots()]
    assert len(labels) == SLOT_COUNT == 12
    for previous, current in zip(labels, labels[1:]):
        assert previous.split(" - ")[1] == current.split(" - ")[0]
    assert label_for(3) == "06:00 - 08:00"


@pytest.mark.parametrize("bad", [12, -1, 100, True, 1.0, "3", None])
def test_out_of_range_slots_are_rejected(bad):
    with pytest.raises(OutOfRangeError):
        label_for(bad)


def test_slot_bounds_and_validate():
    assert slot_bounds(5) == (time(10, 0), time(12, 0))
    assert validate_slot(7) == 7
    # OutOfRangeError is also a ValueError for callers that only know the builtin
    with pytest.raises(ValueError):
        validate_slot(SLOT_COUNT)
