from flask import Blueprint

# public catalogue + user bookings (admin and functions have their own)
main_bp = Blueprint("main", __name__)

from . import courses    # noqa: F401
from . import bookings   # noqa: F401
