# services/course_admin.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from errors import DependencyError, NotFoundError, ValidationError
from extensions import db
from models.course import Course
from services import queries

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "image_url", "date", "location", "price", "max_seats")


def _text(val) -> Optional[str]:
    if val is None:
        return None
    val = str(val).strip()
    return val or None


def _parse_date(val) -> datetime:
    if isinstance(val, datetime):
        dt = val
    else:
        raw = _text(val)
        if not raw:
            raise ValidationError("La date est obligatoire.")
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationError("La date doit être au format ISO 8601.")
    # stored as naive UTC
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _parse_price(val) -> Decimal:
    if val is None or (isinstance(val, str) and not val.strip()):
        raise ValidationError("Le prix est obligatoire.")
    if isinstance(val, bool):
        raise ValidationError("Le prix doit être un nombre.")
    try:
        price = Decimal(str(val).strip())
    except InvalidOperation:
        raise ValidationError("Le prix doit être un nombre.")
    if not price.is_finite():
        raise ValidationError("Le prix doit être un nombre.")
    if price < 0:
        raise ValidationError("Le prix ne peut pas être négatif.")
    return price.quantize(Decimal("0.01"))


def _parse_int(val, label: str) -> int:
    if isinstance(val, bool):
        raise ValidationError(f"{label} doit être un nombre entier.")
    if isinstance(val, int):
        return val
    raw = _text(val)
    if raw is None:
        raise ValidationError(f"{label} est obligatoire.")
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{label} doit être un nombre entier.")


def _parse_max_seats(val) -> int:
    seats = _parse_int(val, "Le nombre de places")
    if seats <= 0:
        raise ValidationError("Le nombre de places doit être positif.")
    return seats


def _clean(data: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    out: dict[str, Any] = {}

    for name, label in (("title", "Le titre"), ("location", "Le lieu")):
        if name in data or not partial:
            value = _text(data.get(name))
            if not value:
                raise ValidationError(f"{label} est obligatoire.")
            out[name] = value

    for name in ("description", "image_url"):
        if name in data:
            out[name] = _text(data.get(name))

    if "date" in data or not partial:
        out["date"] = _parse_date(data.get("date"))
    if "price" in data or not partial:
        out["price"] = _parse_price(data.get("price"))
    if "max_seats" in data or not partial:
        out["max_seats"] = _parse_max_seats(data.get("max_seats"))

    return out


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Course %s failed", action)
        raise DependencyError("Une erreur est survenue lors de l'enregistrement du cours")


def create_course(data: Mapping[str, Any]) -> Course:
    """Create a course. available_seats starts at max_seats unless given explicitly."""
    fields = _clean(data, partial=False)

    available = data.get("available_seats")
    if available is None or (isinstance(available, str) and not available.strip()):
        fields["available_seats"] = fields["max_seats"]
    else:
        available = _parse_int(available, "Le nombre de places disponibles")
        if available < 0 or available > fields["max_seats"]:
            raise ValidationError(
                "Le nombre de places disponibles doit être compris entre 0 et le nombre de places."
            )
        fields["available_seats"] = available

    course = Course(**fields)
    db.session.add(course)
    _commit("create")

    logger.info("Course %s created (%s seats)", course.id, course.max_seats)
    return course


def update_course(course_id: int, data: Mapping[str, Any]) -> Course:
    """Partial metadata update.

    Changing max_seats resizes the free-seat counter against the confirmed
    bookings so that 0 <= available_seats <= max_seats still holds.
    """
    course = queries.get_course(course_id)
    if course is None:
        raise NotFoundError("Cours non trouvé")

    fields = _clean({k: v for k, v in data.items() if k in EDITABLE_FIELDS}, partial=True)

    new_max = fields.get("max_seats")
    if new_max is not None and new_max != course.max_seats:
        confirmed = queries.count_confirmed(course.id)
        fields["available_seats"] = max(0, new_max - confirmed)

    for name, value in fields.items():
        setattr(course, name, value)
    _commit("update")

    logger.info("Course %s updated: %s", course.id, sorted(fields))
    return course


def delete_course(course_id: int) -> None:
    course = queries.get_course(course_id)
    if course is None:
        raise NotFoundError("Cours non trouvé")

    if queries.count_live(course.id):
        raise ValidationError(
            "Ce cours a des réservations actives. Annulez-les avant de supprimer le cours."
        )

    # remaining (cancelled) bookings go with the course
    db.session.delete(course)
    _commit("delete")
    logger.info("Course %s deleted", course_id)
