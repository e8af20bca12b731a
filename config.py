import os

from dotenv import load_dotenv

# Absolute path to project root
basedir = os.path.abspath(os.path.dirname(__file__))

# Runtime only directory (DB, secrets)
instance_dir = os.path.join(basedir, "instance")

load_dotenv(os.path.join(basedir, ".env"))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "sqlite:///" + os.path.join(instance_dir, "app.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Booking notification side-channel (fire-and-forget after a booking write)
    NOTIFY_ENABLED = _env_bool("NOTIFY_ENABLED", True)
    NOTIFY_URL = os.environ.get(
        "NOTIFY_URL", "http://127.0.0.1:5000/functions/v1/send-booking-notification"
    )
    NOTIFY_TIMEOUT = float(os.environ.get("NOTIFY_TIMEOUT", "10"))

    # Bearer token expected by /functions/v1/*. Empty disables the check.
    FUNCTIONS_TOKEN = os.environ.get("FUNCTIONS_TOKEN", "")

    # Resend (email provider)
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    MAIL_FROM = os.environ.get(
        "MAIL_FROM", "Cuisine Italienne <no-reply@unjardinpourfelix.org>"
    )

    # Seeded once into profiles.role by scripts/seed_admin.py, never checked at runtime.
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "")
    # Recipient of the "new booking" email sent to the organiser.
    ADMIN_NOTIFICATION_EMAIL = os.environ.get("ADMIN_NOTIFICATION_EMAIL", "")

    STREAM_HEARTBEAT_SECONDS = float(os.environ.get("STREAM_HEARTBEAT_SECONDS", "15"))
