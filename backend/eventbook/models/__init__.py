from eventbook.models.user import User
from eventbook.models.event import Event
from eventbook.models.booking import Booking, BookingStatus

__all__ = ["User", "Event", "Booking", "BookingStatus"]
