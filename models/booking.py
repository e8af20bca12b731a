from extensions import db
from utils.dates import utcnow

STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUS_WAITLIST = "waitlist"

BOOKING_STATUSES = (STATUS_CONFIRMED, STATUS_CANCELLED, STATUS_WAITLIST)

_LIVE = db.text("status != 'cancelled'")


class Booking(db.Model):
    __tablename__ = "bookings"

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('confirmed', 'cancelled', 'waitlist')", name="ck_booking_status"
        ),
        # At most one non-cancelled booking per (course, user)
        db.Index(
            "uq_booking_live_course_user",
            "course_id",
            "user_id",
            unique=True,
            sqlite_where=_LIVE,
            postgresql_where=_LIVE,
        ),
    )

    id = db.Column(db.Integer, primary_key=True)

    course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    status = db.Column(db.String(16), nullable=False, default=STATUS_CONFIRMED)

    # insertion order drives the FIFO waitlist
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    course = db.relationship("Course", back_populates="bookings", lazy=True)
    profile = db.relationship("Profile", back_populates="bookings", lazy=True)

    @property
    def is_live(self) -> bool:
        return self.status != STATUS_CANCELLED

    def to_dict(self, *, with_course: bool = False, with_profile: bool = False) -> dict:
        data = {
            "id": self.id,
            "course_id": self.course_id,
            "user_id": self.user_id,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if with_course and self.course is not None:
            data["course"] = self.course.summary_dict()
        if with_profile and self.profile is not None:
            data["profile"] = {
                "id": self.profile.id,
                "email": self.profile.email,
                "full_name": self.profile.full_name,
            }
        return data

    def __repr__(self) -> str:
        return f"<Booking {self.id} course={self.course_id} user={self.user_id} {self.status}>"
