from app.models.appointment import Appointment, FixedResource  # noqa: F401
from app.models.base_schedule import BaseSchedule  # noqa: F401
from app.models.blocked_slot import BlockedSlot  # noqa: F401
from app.models.practitioner import Practitioner  # noqa: F401
