import asyncio
from datetime import date

import pytest

from controller import CellState, ReservationController, ToggleResult
from errors import AuthError, ConflictError, PermissionDeniedError

DAY = date(2024, 5, 1)


@pytest.mark.asyncio
async def test_identity_provider_round_trip(make_client):
    lab = await make_client()
    assert lab.current_identity() is None

    await lab.register("ada@lab.test", "secret-pw")
    with pytest.raises(AuthError):
        await lab.register("ada@lab.test", "secret-pw")
    with pytest.raises(AuthError):
        await lab.authenticate("ada@lab.test", "wrong-pw")

    identity = await lab.authenticate("ada@lab.test", "secret-pw")
    assert lab.current_identity() == identity

    await lab.sign_out()
    assert lab.current_identity() is None
    with pytest.raises(AuthError):
        await lab.list_resources()


@pytest.mark.asyncio
async def test_store_errors_are_translated(make_client):
    ada = await make_client("ada@lab.test")
    bob = await make_client("bob@lab.test")

    created = await ada.insert_reservation("gpu-1", DAY, 3)
    with pytest.raises(ConflictError):
        await bob.insert_reservation("gpu-1", DAY, 3)
    with pytest.raises(PermissionDeniedError):
        await bob.delete_reservation(created.id)

    assert [r.id for r in await bob.list_reservations(DAY)] == [created.id]


@pytest.mark.asyncio
async def test_scenario_against_service(make_client):
    ada = ReservationController(await make_client("ada@lab.test"), active_date="2024-05-01")
    bob = ReservationController(await make_client("bob@lab.test"), active_date="2024-05-01")
    await ada.start()
    await bob.start()

    assert await ada.toggle("gpu-1", 3) == ToggleResult.BOOKED
    await bob.refresh_reservations()
    assert ada.cell_state("gpu-1", 3) == CellState.RESERVED_BY_ME
    assert bob.cell_state("gpu-1", 3) == CellState.RESERVED_BY_OTHER
    assert await bob.toggle("gpu-1", 3) == ToggleResult.REJECTED

    assert await ada.toggle("gpu-1", 3) == ToggleResult.CANCELLED
    await bob.refresh_reservations()
    assert ada.cell_state("gpu-1", 3) == CellState.AVAILABLE
    assert bob.cell_state("gpu-1", 3) == CellState.AVAILABLE


@pytest.mark.asyncio
async def test_race_loser_converges_to_taken(make_client):
    ada = ReservationController(await make_client("ada@lab.test"), active_date=DAY)
    bob = ReservationController(await make_client("bob@lab.test"), active_date=DAY)
    await ada.start()
    await bob.start()  # both see the cell empty

    await ada.toggle("gpu-2", 7)
    with pytest.raises(ConflictError):
        await bob.toggle("gpu-2", 7)
    assert bob.cell_state("gpu-2", 7) == CellState.AVAILABLE

    await bob.refresh_reservations()
    assert bob.cell_state("gpu-2", 7) == CellState.RESERVED_BY_OTHER


@pytest.mark.asyncio
async def test_simultaneous_bookings_through_service_one_winner(make_client):
    ada = ReservationController(await make_client("ada@lab.test"), active_date=DAY)
    bob = ReservationController(await make_client("bob@lab.test"), active_date=DAY)
    await ada.start()
    await bob.start()

    results = await asyncio.gather(
        ada.toggle("gpu-1", 5),
        bob.toggle("gpu-1", 5),
        return_exceptions=True,
    )

    assert [r for r in results if r == ToggleResult.BOOKED] == [ToggleResult.BOOKED]
    assert len([r for r in results if isinstance(r, ConflictError)]) == 1

    loser, winner = (bob, ada) if isinstance(results[1], ConflictError) else (ada, bob)
    await loser.refresh_reservations()
    assert loser.cell_state("gpu-1", 5) == CellState.RESERVED_BY_OTHER
    assert winner.cell_state("gpu-1", 5) == CellState.RESERVED_BY_ME
    assert len(await loser.client.list_reservations(DAY)) == 1
