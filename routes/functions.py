"""Notification functions

- POST /functions/v1/send-booking-confirmation  one email through the templated sender
- POST /functions/v1/send-booking-notification  user email + organiser email via Resend

Body: {"courseId": ..., "userId": ..., "status": ...}
200 {"message": ...} on success, 400 {"error": ...} on any failure.
"""

import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from errors import AppError, ValidationError
from extensions import db
from models.booking import STATUS_CONFIRMED
from models.course import Course
from models.profile import Profile
from services.mailer import get_email_service
from utils.dates import format_french_datetime

logger = logging.getLogger(__name__)

functions_bp = Blueprint("functions", __name__, url_prefix="/functions/v1")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@functions_bp.after_request
def _cors(response):
    response.headers.update(CORS_HEADERS)
    return response


def _authorized() -> bool:
    expected = current_app.config.get("FUNCTIONS_TOKEN")
    if not expected:
        return True
    header = request.headers.get("Authorization", "")
    token = header[len("Bearer "):] if header.startswith("Bearer ") else ""
    return hmac.compare_digest(token, expected)


def _load_course_and_profile(payload: dict, *, require_status: bool):
    course_id = payload.get("courseId")
    user_id = payload.get("userId")
    status = payload.get("status")

    if not course_id or not user_id or (require_status and not status):
        raise ValidationError("Missing required parameters")

    try:
        course = db.session.get(Course, int(course_id))
        profile = db.session.get(Profile, int(user_id))
    except (TypeError, ValueError):
        raise ValidationError("Invalid course or user id")

    if course is None or profile is None:
        raise ValidationError("Course or user not found")
    return course, profile, status


def _price(course: Course) -> str:
    return f"{course.price:.2f}".replace(".", ",")


def _error(err: Exception):
    message = err.message if isinstance(err, AppError) else str(err)
    return jsonify({"error": message}), 400


@functions_bp.route("/send-booking-confirmation", methods=["POST", "OPTIONS"])
def send_booking_confirmation():
    if request.method == "OPTIONS":
        return "ok"
    if not _authorized():
        return jsonify({"error": "Unauthorized"}), 401

    try:
        payload = request.get_json(silent=True) or {}
        course, profile, _ = _load_course_and_profile(payload, require_status=False)

        get_email_service().send_template(
            profile.email,
            f"Confirmation de réservation - {course.title}",
            "booking_confirmation",
            {
                "course_name": course.title,
                "course_date": format_french_datetime(course.date),
                "course_location": course.location,
                "course_price": _price(course),
                "course_description": course.description or "",
            },
        )
    except Exception as e:
        logger.error("Error in send-booking-confirmation: %s", e)
        return _error(e)

    return jsonify({"message": "Email sent successfully"})


@functions_bp.route("/send-booking-notification", methods=["POST", "OPTIONS"])
def send_booking_notification():
    if request.method == "OPTIONS":
        return "ok"
    if not _authorized():
        return jsonify({"error": "Unauthorized"}), 401

    try:
        payload = request.get_json(silent=True) or {}
        course, profile, status = _load_course_and_profile(payload, require_status=True)

        confirmed = status == STATUS_CONFIRMED
        context = {
            "course": course,
            "course_date": format_french_datetime(course.date),
            "course_price": _price(course),
            "full_name": profile.full_name,
            "email": profile.email,
            "confirmed": confirmed,
        }
        mailer = get_email_service()

        user_subject = "Confirmation de réservation" if confirmed else "Inscription sur liste d'attente"
        mailer.send_template(profile.email, f"{user_subject} - {course.title}", "booking_user", context)

        admin_email = current_app.config.get("ADMIN_NOTIFICATION_EMAIL")
        if admin_email:
            admin_subject = "Nouvelle réservation" if confirmed else "Nouvelle inscription liste d'attente"
            mailer.send_template(admin_email, f"{admin_subject} - {course.title}", "booking_admin", context)
        else:
            logger.warning("ADMIN_NOTIFICATION_EMAIL not configured, skipping organiser email")
    except Exception as e:
        logger.error("Error in send-booking-notification: %s", e)
        return _error(e)

    return jsonify({"message": "Notifications sent successfully"})
