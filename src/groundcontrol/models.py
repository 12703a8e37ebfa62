"""
Import every ORM module so `Base.metadata` knows all tables.
"""

from groundcontrol.auth import models as auth_models  # noqa: F401
from groundcontrol.calls import models as call_models  # noqa: F401
from groundcontrol.events import models as event_models  # noqa: F401
from groundcontrol.people import models as people_models  # noqa: F401
from groundcontrol.shared.database import Base

__all__ = ["Base"]
