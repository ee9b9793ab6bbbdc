from admission.models.event import Event
from admission.models.join_request import JoinRequestRow

__all__ = ["Event", "JoinRequestRow"]
