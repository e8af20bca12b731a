from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from errors import DependencyError, NotFoundError, ValidationError
from extensions import db
from models.booking import (
    BOOKING_STATUSES,
    Booking,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_WAITLIST,
)
from services import queries
from services.booking_workflow import recount_seats

logger = logging.getLogger(__name__)


def get_course_bookings(course_id) -> list[Booking]:
    """All bookings of a course with their profile, oldest first."""
    if course_id in (None, ""):
        raise ValidationError("ID du cours manquant")

    try:
        if queries.get_course(int(course_id)) is None:
            raise NotFoundError("Cours non trouvé")
        return queries.list_course_bookings(int(course_id))
    except (TypeError, ValueError):
        raise ValidationError("ID du cours invalide")
    except SQLAlchemyError:
        logger.exception("Error fetching bookings for course %s", course_id)
        raise DependencyError(
            "Une erreur est survenue lors de la récupération des réservations"
        )


def partition_by_status(bookings: Iterable) -> dict[str, list]:
    """Split into confirmed / waitlist / cancelled buckets, keeping the input order.

    Accepts Booking rows or their dict form.
    """
    buckets: dict[str, list] = {
        STATUS_CONFIRMED: [],
        STATUS_WAITLIST: [],
        STATUS_CANCELLED: [],
    }
    for b in bookings:
        status = b["status"] if isinstance(b, dict) else b.status
        buckets.setdefault(status, []).append(b)
    return buckets


def set_booking_status(booking_id, new_status: str) -> Booking:
    """Write `new_status` on a booking.

    Any transition between the three statuses is accepted. Afterwards the
    course's free seat counter is recomputed from the confirmed set, so an
    admin may confirm past capacity (the counter stays at 0) and a later
    cancellation only frees a seat once confirmed bookings drop below
    max_seats. Waitlisted bookings are never promoted automatically.
    """
    if new_status not in BOOKING_STATUSES:
        raise ValidationError(f"Statut invalide : {new_status}")

    try:
        booking = db.session.get(Booking, int(booking_id))
    except (TypeError, ValueError):
        raise ValidationError("ID de réservation invalide")
    if booking is None:
        raise NotFoundError("Réservation non trouvée")

    old_status = booking.status
    if old_status == new_status:
        return booking

    try:
        booking.status = new_status
        if STATUS_CONFIRMED in (old_status, new_status):
            db.session.flush()
            recount_seats(booking.course_id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Status update failed for booking %s", booking_id)
        raise DependencyError("Une erreur est survenue lors de la mise à jour du statut")

    logger.info("Booking %s: %s -> %s", booking.id, old_status, new_status)
    return booking
