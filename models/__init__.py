# db models (imported so db.create_all() sees every table)
from models.profile import Profile  # noqa: F401
from models.course import Course  # noqa: F401
from models.booking import Booking  # noqa: F401
