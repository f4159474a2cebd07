from app.models.user import User
from app.models.cinema import Cinema
from app.models.screening import Screening
from app.models.reservation import Reservation, ReservationStatus

__all__ = ["User", "Cinema", "Screening", "Reservation", "ReservationStatus"]
