import httpx
import pytest
from sqlalchemy.exc import OperationalError
from flask_login import AnonymousUserMixin

from errors import (
    AuthenticationRequired,
    DependencyError,
    DuplicateBookingError,
    NotFoundError,
    ValidationError,
)
from extensions import db
from models.booking import Booking, STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_WAITLIST
from models.course import Course
from services import admin_bookings, booking_workflow, queries
from services.booking_workflow import create_booking
from services.notifier import Notifier


def _seats(course_id):
    db.session.expire_all()
    return db.session.get(Course, course_id).available_seats


def test_free_seat_gives_confirmed_and_takes_the_seat(user, make_course, notifier):
    course = make_course(max_seats=3, available_seats=3)

    booking, bookings = create_booking(user, course.id)

    assert booking.status == STATUS_CONFIRMED
    assert _seats(course.id) == 2
    assert [b.id for b in bookings] == [booking.id]


def test_full_course_gives_waitlist(user, make_course, notifier):
    course = make_course(max_seats=2, available_seats=0)

    booking, _ = create_booking(user, course.id)

    assert booking.status == STATUS_WAITLIST
    assert _seats(course.id) == 0


def test_second_booking_for_same_course_is_rejected(user, make_course, notifier):
    course = make_course()
    create_booking(user, course.id)

    with pytest.raises(DuplicateBookingError) as exc:
        create_booking(user, course.id)

    assert exc.value.message == "Vous avez déjà réservé ce cours"
    assert Booking.query.filter_by(course_id=course.id, user_id=user.id).count() == 1
    assert _seats(course.id) == course.max_seats - 1
    assert len(notifier.calls) == 1


def test_rebooking_after_cancellation_is_allowed(user, make_course, notifier):
    course = make_course()
    first, _ = create_booking(user, course.id)
    admin_bookings.set_booking_status(first.id, STATUS_CANCELLED)

    second, bookings = create_booking(user, course.id)

    assert second.status == STATUS_CONFIRMED
    assert [b.id for b in bookings] == [second.id, first.id]


def test_unknown_course(user, notifier):
    with pytest.raises(NotFoundError):
        create_booking(user, 9999)
    assert Booking.query.count() == 0
    assert notifier.calls == []


def test_anonymous_caller_cannot_book(make_course, notifier):
    course = make_course()

    with pytest.raises(AuthenticationRequired):
        create_booking(AnonymousUserMixin(), course.id)
    with pytest.raises(AuthenticationRequired):
        create_booking(None, course.id)

    assert Booking.query.count() == 0


@pytest.mark.parametrize("course_id", [None, "", "abc"])
def test_bad_course_id(user, notifier, course_id):
    with pytest.raises(ValidationError):
        create_booking(user, course_id)


def test_notifier_receives_the_decided_status(user, make_course, notifier):
    open_course = make_course(title="Risotto")
    full_course = make_course(title="Tiramisu", max_seats=4, available_seats=0)

    create_booking(user, open_course.id)
    create_booking(user, full_course.id)

    assert notifier.calls == [
        (open_course.id, user.id, STATUS_CONFIRMED),
        (full_course.id, user.id, STATUS_WAITLIST),
    ]


def test_notification_transport_error_does_not_fail_booking(user, make_course, monkeypatch):
    course = make_course()

    def boom(*args, **kwargs):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx, "post", boom)
    notifier = Notifier("http://notify.invalid/send", token="t")

    booking, bookings = create_booking(user, course.id, notifier=notifier)

    assert booking.status == STATUS_CONFIRMED
    assert len(bookings) == 1


def test_notification_error_response_does_not_fail_booking(user, make_course, monkeypatch):
    course = make_course()
    sent = {}

    def fake_post(url, json, headers, timeout):
        sent.update(url=url, json=json, headers=headers)
        return httpx.Response(400, json={"error": "Missing required parameters"})

    monkeypatch.setattr(httpx, "post", fake_post)
    notifier = Notifier("http://notify.local/send", token="tok")

    booking, _ = create_booking(user, course.id, notifier=notifier)

    assert booking.id is not None
    assert sent["json"] == {"courseId": course.id, "userId": user.id, "status": STATUS_CONFIRMED}
    assert sent["headers"]["Authorization"] == "Bearer tok"


def test_user_list_is_newest_first(user, make_course, notifier):
    a = make_course(title="A")
    b = make_course(title="B")
    first, _ = create_booking(user, a.id)
    second, bookings = create_booking(user, b.id)

    assert [x.id for x in bookings] == [second.id, first.id]


def test_concurrent_duplicate_is_caught_by_the_unique_index(user, make_course, notifier, monkeypatch):
    course = make_course(max_seats=5)
    create_booking(user, course.id)

    # the pre-check misses the existing booking, as if both requests raced
    monkeypatch.setattr(queries, "live_bookings_for", lambda course_id, user_id: [])

    with pytest.raises(DuplicateBookingError):
        booking_workflow.create_booking(user, course.id)

    assert Booking.query.filter_by(course_id=course.id).count() == 1
    # the second seat claim was rolled back with the failed insert
    assert _seats(course.id) == 4


def test_last_seat_cannot_be_taken_twice(make_profile, make_course, notifier):
    course = make_course(max_seats=1, available_seats=1)
    u1 = make_profile(email="u1@example.org")
    u2 = make_profile(email="u2@example.org")

    b1, _ = create_booking(u1, course.id)
    b2, _ = create_booking(u2, course.id)

    assert (b1.status, b2.status) == (STATUS_CONFIRMED, STATUS_WAITLIST)
    assert _seats(course.id) == 0


def test_cancel_does_not_promote_waitlist(make_profile, make_course, notifier):
    course = make_course(max_seats=1, available_seats=1)
    u1 = make_profile(email="u1@example.org")
    u2 = make_profile(email="u2@example.org")

    b1, _ = create_booking(u1, course.id)
    b2, _ = create_booking(u2, course.id)
    assert b1.status == STATUS_CONFIRMED
    assert b2.status == STATUS_WAITLIST
    assert _seats(course.id) == 0

    admin_bookings.set_booking_status(b1.id, STATUS_CANCELLED)
    db.session.expire_all()
    assert db.session.get(Booking, b2.id).status == STATUS_WAITLIST
    assert _seats(course.id) == 1

    admin_bookings.set_booking_status(b2.id, STATUS_CONFIRMED)
    buckets = admin_bookings.partition_by_status(admin_bookings.get_course_bookings(course.id))
    assert [b.id for b in buckets[STATUS_CONFIRMED]] == [b2.id]
    assert buckets[STATUS_WAITLIST] == []
    assert _seats(course.id) == 0


def test_failed_commit_writes_nothing(user, make_course, notifier, monkeypatch):
    course = make_course(max_seats=3, available_seats=3)

    def broken_commit():
        raise OperationalError("INSERT INTO bookings", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session(), "commit", broken_commit)

    with pytest.raises(DependencyError):
        create_booking(user, course.id)

    monkeypatch.undo()
    assert Booking.query.count() == 0
    assert _seats(course.id) == 3
    assert notifier.calls == []


def test_cancelling_after_admin_override_does_not_overbook(make_profile, make_course, notifier):
    course = make_course(max_seats=1, available_seats=1)
    a = make_profile(email="a@example.org")
    b = make_profile(email="b@example.org")
    c = make_profile(email="c@example.org")

    booking_a, _ = create_booking(a, course.id)
    booking_b, _ = create_booking(b, course.id)
    assert booking_b.status == STATUS_WAITLIST

    # admin confirms past capacity, then cancels the original seat holder
    admin_bookings.set_booking_status(booking_b.id, STATUS_CONFIRMED)
    assert _seats(course.id) == 0
    admin_bookings.set_booking_status(booking_a.id, STATUS_CANCELLED)
    assert _seats(course.id) == 0

    booking_c, _ = create_booking(c, course.id)

    assert booking_c.status == STATUS_WAITLIST
    confirmed = Booking.query.filter_by(course_id=course.id, status=STATUS_CONFIRMED).count()
    assert confirmed == course.max_seats
    assert _seats(course.id) == 0


def test_cancelling_after_override_frees_a_seat_once_under_capacity(make_profile, make_course, notifier):
    course = make_course(max_seats=1, available_seats=1)
    a = make_profile(email="a@example.org")
    b = make_profile(email="b@example.org")

    booking_a, _ = create_booking(a, course.id)
    booking_b, _ = create_booking(b, course.id)
    admin_bookings.set_booking_status(booking_b.id, STATUS_CONFIRMED)

    admin_bookings.set_booking_status(booking_a.id, STATUS_CANCELLED)
    admin_bookings.set_booking_status(booking_b.id, STATUS_CANCELLED)

    assert _seats(course.id) == 1
