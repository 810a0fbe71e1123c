import logging
from datetime import date
from typing import List

from fastapi import FastAPI, Depends, HTTPException, Response, status
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from fastapi.middleware.cors import CORSMiddleware

from auth import (
    authenticate_user,
    get_current_token,
    get_current_user,
    issue_token,
    register_user,
    revoke_token,
)
from database import init_db, get_session, load_systems_file, seed_systems
from logging_config import setup_logging
from models import AuthToken, Reservation, System, User, as_utc
from schemas import (
    Credentials,
    Identity,
    ReservationCreate,
    ReservationRead,
    SlotStatus,
    SystemRead,
    SystemSchedule,
    TokenResponse,
)
from settings import settings
from slots import all_slots, label_for

logger = logging.getLogger(__name__)

app = FastAPI(title="GPU Lab Reservation System")


@app.on_event("startup")
async def on_startup():
    setup_logging()
    await init_db()
    if settings.systems_file:
        await seed_systems(load_systems_file(settings.systems_file))


# --- Identity provider ---
@app.post("/auth/register", response_model=Identity, status_code=status.HTTP_201_CREATED)
async def register(
    credentials: Credentials,
    session: AsyncSession = Depends(get_session),
):
    user = await register_user(session, credentials.email, credentials.password)
    return Identity(user_id=user.id, email=user.email)


@app.post("/auth/login", response_model=TokenResponse)
async def login(
    credentials: Credentials,
    session: AsyncSession = Depends(get_session),
):
    user = await authenticate_user(session, credentials.email, credentials.password)
    if user is None:
        logger.info("Rejected sign-in for %s", credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login credentials",
        )

    token = await issue_token(session, user)
    return TokenResponse(
        access_token=token.token,
        user_id=user.id,
        email=user.email,
        expires_at=as_utc(token.expires_at),
    )


@app.get("/auth/me", response_model=Identity)
async def me(user: User = Depends(get_current_user)):
    return Identity(user_id=user.id, email=user.email)


@app.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: AuthToken = Depends(get_current_token),
    session: AsyncSession = Depends(get_session),
):
    await revoke_token(session, token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Resource catalog ---
@app.get("/systems", response_model=List[SystemRead])
async def list_systems(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(select(System).order_by(System.name, System.id))
    return result.scalars().all()


# --- Reservation store ---
@app.get("/reservations", response_model=List[ReservationRead])
async def list_reservations(
    date: date,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    statement = (
        select(Reservation)
        .where(Reservation.date == date)
        .order_by(Reservation.system_id, Reservation.time_slot)
    )
    result = await session.execute(statement)
    return result.scalars().all()


@app.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation_data: ReservationCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    if await session.get(System, reservation_data.system_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown system")

    # Owner always comes from the bearer token; read before commit/rollback expire `user`
    user_id = user.id
    new_reservation = Reservation(
        system_id=reservation_data.system_id,
        date=reservation_data.date,
        time_slot=reservation_data.time_slot,
        user_id=user_id,
    )

    try:
        session.add(new_reservation)
        await session.commit()
        await session.refresh(new_reservation)
    except IntegrityError:
        # This catches the UniqueConstraint violation on (system, date, slot)
        await session.rollback()
        logger.info(
            "Slot conflict: system=%s date=%s slot=%s user=%s",
            reservation_data.system_id, reservation_data.date,
            reservation_data.time_slot, user_id,
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Slot already booked for this system and time."
        )

    logger.info(
        "Reservation %s created: system=%s date=%s slot=%s",
        new_reservation.id, new_reservation.system_id,
        new_reservation.date, new_reservation.time_slot,
    )
    return new_reservation


@app.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reservation(
    reservation_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    reservation = await session.get(Reservation, reservation_id)
    if reservation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reservation not found")

    if reservation.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner may cancel this reservation",
        )

    await session.delete(reservation)
    await session.commit()
    logger.info("Reservation %s cancelled by owner", reservation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- GET /dashboard-grid ---
@app.get("/dashboard-grid", response_model=List[SystemSchedule])
async def get_dashboard_grid(
    target_date: date,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    # Step 1: Query DB for ALL reservations on this date (single query)
    result = await session.execute(select(Reservation).where(Reservation.date == target_date))
    reservations = result.scalars().all()

    # Step 2: Lookup keyed by (system_id, time_slot)
    reservation_map = {
        (r.system_id, r.time_slot): r for r in reservations
    }

    systems = (await session.execute(select(System).order_by(System.name, System.id))).scalars().all()

    # Step 3: Construct the Grid, status relative to the caller
    dashboard_data = []
    for system in systems:
        schedule = []
        for slot in all_slots():
            existing = reservation_map.get((system.id, slot))
            if existing is None:
                status_name = "available"
            elif existing.user_id == user.id:
                status_name = "reserved"
            else:
                status_name = "taken"

            schedule.append(SlotStatus(
                time_label=label_for(slot),
                time_slot=slot,
                status=status_name,
                reservation_id=existing.id if existing else None,
            ))

        dashboard_data.append(SystemSchedule(system=SystemRead.model_validate(system), schedule=schedule))

    return dashboard_data


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
