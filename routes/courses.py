from flask import jsonify, url_for

from . import main_bp
from errors import NotFoundError
from routes.streaming import sse_response
from services import queries
from services.change_feed import get_feed
from services.mirrors import catalogue_mirror


@main_bp.route("/")
def home():
    return jsonify(
        {
            "message": "Cours de cuisine italienne",
            "courses": url_for("main.list_courses"),
        }
    )


@main_bp.route("/courses")
def list_courses():
    courses = queries.list_courses()
    return jsonify({"courses": [c.to_dict() for c in courses]})


@main_bp.route("/courses/<int:course_id>")
def course_detail(course_id: int):
    course = queries.get_course(course_id)
    if course is None:
        raise NotFoundError("Cours non trouvé")
    return jsonify({"course": course.to_dict()})


@main_bp.route("/courses/stream")
def stream_courses():
    # live catalogue: a fresh snapshot after every course change
    return sse_response(catalogue_mirror(get_feed()))
