class ReservationSystemError(Exception):
    """Base class for every error the reservation client surfaces."""


class AuthError(ReservationSystemError):
    """Invalid credentials, duplicate registration or missing session."""


class FetchError(ReservationSystemError):
    """Catalog or reservation read failed (network or store fault)."""


class ConflictError(ReservationSystemError):
    """Insert rejected because the slot is already taken."""


class NotFoundError(ReservationSystemError):
    """The referenced reservation or system no longer exists."""


class PermissionDeniedError(ReservationSystemError):
    """The store refused to delete a reservation owned by someone else."""


class OutOfRangeError(ReservationSystemError, ValueError):
    """Slot index outside the day's grid."""
