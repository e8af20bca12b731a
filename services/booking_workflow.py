"""Booking workflow: user action -> confirmed or waitlisted booking.

Steps
1. duplicate check (live booking for the same course + user)
2. course lookup
3. seat claim + booking insert, in one transaction
4. notification (best effort)
5. refetch of the user's bookings for the caller

The seat claim is a single conditional UPDATE:

    UPDATE courses SET available_seats = available_seats - 1
    WHERE id = :id AND available_seats > 0

One row touched means a seat was taken (confirmed); none means the course is
full (waitlist). Two concurrent requests for the last seat cannot both win.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import (
    AuthenticationRequired,
    DependencyError,
    DuplicateBookingError,
    NotFoundError,
    ValidationError,
)
from extensions import db
from models.booking import Booking, STATUS_CONFIRMED, STATUS_WAITLIST
from models.course import Course
from services import queries
from services.change_feed import UPDATE as OP_UPDATE, note_change
from services.notifier import Notifier, get_notifier

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Vous avez déjà réservé ce cours"


def claim_seat(course_id: int) -> bool:
    """Take one seat if any is left. Must run inside the booking transaction."""
    result = db.session.execute(
        update(Course)
        .where(Course.id == course_id, Course.available_seats > 0)
        .values(available_seats=Course.available_seats - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    note_change(db.session, "courses", OP_UPDATE, {"id": course_id})
    return True


def recount_seats(course_id: int) -> None:
    """Reset available_seats to max(0, max_seats - confirmed bookings).

    Flush pending status changes first; the count is read by the UPDATE itself.
    """
    confirmed = (
        select(func.count(Booking.id))
        .where(Booking.course_id == course_id, Booking.status == STATUS_CONFIRMED)
        .scalar_subquery()
    )
    db.session.execute(
        update(Course)
        .where(Course.id == course_id)
        .values(
            available_seats=case(
                (confirmed >= Course.max_seats, 0),
                else_=Course.max_seats - confirmed,
            )
        )
        .execution_options(synchronize_session=False)
    )
    note_change(db.session, "courses", OP_UPDATE, {"id": course_id})


def create_booking(user, course_id, notifier: Optional[Notifier] = None):
    """Book `course_id` for `user`.

    Returns (booking, bookings) where bookings is the user's refreshed list,
    newest first. Raises ValidationError, DuplicateBookingError,
    NotFoundError or DependencyError; on any of those nothing is written.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise AuthenticationRequired("Vous devez être connecté pour réserver un cours")
    if course_id in (None, ""):
        raise ValidationError("ID du cours manquant")

    try:
        course_id = int(course_id)
    except (TypeError, ValueError):
        raise ValidationError("ID du cours invalide")

    try:
        if queries.live_bookings_for(course_id, user.id):
            raise DuplicateBookingError(DUPLICATE_MESSAGE)

        course = queries.get_course(course_id)
        if course is None:
            raise NotFoundError("Cours non trouvé")

        status = STATUS_CONFIRMED if claim_seat(course_id) else STATUS_WAITLIST
        booking = Booking(course_id=course_id, user_id=user.id, status=status)
        db.session.add(booking)
        db.session.commit()
    except IntegrityError:
        # a concurrent request slipped in between the check and the insert
        db.session.rollback()
        raise DuplicateBookingError(DUPLICATE_MESSAGE)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Booking write failed for course=%s user=%s", course_id, user.id)
        raise DependencyError("Une erreur est survenue lors de la réservation")
    except Exception:
        db.session.rollback()
        raise

    logger.info("Booking %s: user=%s course=%s status=%s", booking.id, user.id, course_id, status)

    (notifier or get_notifier()).notify(course_id, user.id, status)

    try:
        bookings = queries.list_user_bookings(user.id)
    except SQLAlchemyError:
        logger.exception("Could not refetch bookings for user=%s", user.id)
        raise DependencyError("Une erreur est survenue")
    return booking, bookings
