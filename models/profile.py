from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from extensions import db
from utils.dates import utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class Profile(UserMixin, db.Model):
    __tablename__ = "profiles"

    __table_args__ = (
        db.CheckConstraint("role IN ('user', 'admin')", name="ck_profile_role"),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    bookings = db.relationship("Booking", back_populates="profile", lazy=True)

    @property
    def is_admin(self) -> bool:
        # role column is the only source of admin capability
        return self.role == ROLE_ADMIN

    def set_password(self, password: str) -> None:
        # use PBKDF2 instead of the default scrypt
        self.password_hash = generate_password_hash(
            password,
            method="pbkdf2:sha256",
            salt_length=16,
        )

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"<Profile {self.email}>"
