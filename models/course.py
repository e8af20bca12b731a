
from extensions import db
from utils.dates import utcnow


class Course(db.Model):
    __tablename__ = "courses"

    __table_args__ = (
        db.CheckConstraint("max_seats > 0", name="ck_course_max_seats"),
        db.CheckConstraint(
            "available_seats >= 0 AND available_seats <= max_seats",
            name="ck_course_available_seats",
        ),
        db.CheckConstraint("price >= 0", name="ck_course_price"),
    )

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    date = db.Column(db.DateTime, nullable=False, index=True)
    location = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    # Fixed capacity; available_seats is the mutable counter (0..max_seats)
    max_seats = db.Column(db.Integer, nullable=False)
    available_seats = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    bookings = db.relationship(
        "Booking",
        back_populates="course",
        cascade="all",
        lazy=True,
    )

    def summary_dict(self) -> dict:
        # the subset embedded in a user's booking list
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date.isoformat(),
            "location": self.location,
            "price": float(self.price),
        }

    def to_dict(self) -> dict:
        data = self.summary_dict()
        data.update(
            {
                "description": self.description,
                "image_url": self.image_url,
                "max_seats": self.max_seats,
                "available_seats": self.available_seats,
            }
        )
        return data

    def __repr__(self) -> str:
        return f"<Course {self.id} {self.title!r}>"
