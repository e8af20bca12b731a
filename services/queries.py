from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import joinedload

from extensions import db
from models.booking import Booking, STATUS_CANCELLED, STATUS_CONFIRMED
from models.course import Course


def list_courses() -> list[Course]:
    # catalogue order: soonest class first
    return Course.query.order_by(Course.date.asc(), Course.id.asc()).all()


def get_course(course_id: int) -> Optional[Course]:
    return db.session.get(Course, course_id)


def list_user_bookings(user_id: int) -> list[Booking]:
    return (
        Booking.query
        .options(joinedload(Booking.course))
        .filter_by(user_id=user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )


def list_course_bookings(course_id: int) -> list[Booking]:
    # oldest first: this is the waitlist order
    return (
        Booking.query
        .options(joinedload(Booking.profile))
        .filter_by(course_id=course_id)
        .order_by(Booking.created_at.asc(), Booking.id.asc())
        .all()
    )


def live_bookings_for(course_id: int, user_id: int) -> list[Booking]:
    return (
        Booking.query
        .filter(
            Booking.course_id == course_id,
            Booking.user_id == user_id,
            Booking.status != STATUS_CANCELLED,
        )
        .all()
    )


def count_confirmed(course_id: int) -> int:
    return Booking.query.filter_by(course_id=course_id, status=STATUS_CONFIRMED).count()


def count_live(course_id: int) -> int:
    return (
        Booking.query
        .filter(Booking.course_id == course_id, Booking.status != STATUS_CANCELLED)
        .count()
    )
