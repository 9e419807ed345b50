"""ORM models exposed for metadata discovery."""
from dreamplan.db.models.action import Action
from dreamplan.db.models.action_occurrence import ActionOccurrence
from dreamplan.db.models.agent_action_log import AgentActionLog
from dreamplan.db.models.area import Area
from dreamplan.db.models.dream import Dream
from dreamplan.db.models.user import User

__all__ = [
    "Action",
    "ActionOccurrence",
    "AgentActionLog",
    "Area",
    "Dream",
    "User",
]
