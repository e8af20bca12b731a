from flask import jsonify
from flask_login import current_user, login_required

from . import main_bp
from routes.streaming import sse_response
from services import queries
from services.booking_workflow import create_booking
from services.change_feed import get_feed
from services.mirrors import user_bookings_mirror


@main_bp.route("/courses/<int:course_id>/book", methods=["POST"])
@login_required
def book_course(course_id: int):
    # anonymous callers never get here: login_required sends them to auth.login
    booking, bookings = create_booking(current_user, course_id)
    return (
        jsonify(
            {
                "booking": booking.to_dict(with_course=True),
                "bookings": [b.to_dict(with_course=True) for b in bookings],
            }
        ),
        201,
    )


@main_bp.route("/bookings")
@login_required
def my_bookings():
    bookings = queries.list_user_bookings(current_user.id)
    return jsonify({"bookings": [b.to_dict(with_course=True) for b in bookings]})


@main_bp.route("/bookings/stream")
@login_required
def stream_my_bookings():
    return sse_response(user_bookings_mirror(get_feed(), current_user.id))
