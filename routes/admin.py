"""Admin console

- courses: list / create / update / delete
- bookings of a course, split into confirmed / waitlist / cancelled
- manual status changes (confirm, cancel, back to waitlist)
"""

from flask import Blueprint, jsonify, request

from auth.guards import admin_required
from errors import NotFoundError
from routes.streaming import sse_response
from services import queries
from services.admin_bookings import get_course_bookings, partition_by_status, set_booking_status
from services.change_feed import get_feed
from services.course_admin import create_course, delete_course, update_course
from services.mirrors import course_bookings_mirror

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data


def _bookings_view(course_id: int) -> dict:
    course = queries.get_course(course_id)
    if course is None:
        raise NotFoundError("Cours non trouvé")
    bookings = [b.to_dict(with_profile=True) for b in get_course_bookings(course_id)]
    return {"course": course.to_dict(), **partition_by_status(bookings)}


@admin_bp.route("/courses")
@admin_required
def list_courses():
    return jsonify({"courses": [c.to_dict() for c in queries.list_courses()]})


@admin_bp.route("/courses", methods=["POST"])
@admin_required
def new_course():
    course = create_course(_payload())
    return jsonify({"course": course.to_dict()}), 201


@admin_bp.route("/courses/<int:course_id>", methods=["PUT", "PATCH"])
@admin_required
def edit_course(course_id: int):
    course = update_course(course_id, _payload())
    return jsonify({"course": course.to_dict()})


@admin_bp.route("/courses/<int:course_id>", methods=["DELETE"])
@admin_required
def remove_course(course_id: int):
    delete_course(course_id)
    return jsonify({"message": "Cours supprimé"})


@admin_bp.route("/courses/<int:course_id>/bookings")
@admin_required
def course_bookings(course_id: int):
    return jsonify(_bookings_view(course_id))


@admin_bp.route("/courses/<int:course_id>/bookings/stream")
@admin_required
def stream_course_bookings(course_id: int):
    if queries.get_course(course_id) is None:
        raise NotFoundError("Cours non trouvé")
    return sse_response(course_bookings_mirror(get_feed(), course_id), render=partition_by_status)


@admin_bp.route("/bookings/<int:booking_id>/status", methods=["POST"])
@admin_required
def update_booking_status(booking_id: int):
    # errors surface as {"error": ...}; nothing is changed in that case
    status = str(_payload().get("status") or "").strip()
    booking = set_booking_status(booking_id, status)
    return jsonify({"booking": booking.to_dict(), **_bookings_view(booking.course_id)})
