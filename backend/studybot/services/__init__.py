"""Domain services: store access, dispatch, notifications and transport."""

from studybot.services.assignments import AssignmentService
from studybot.services.authorization import AssignmentEditorPolicy
from studybot.services.bot_config import BotConfigService
from studybot.services.classes import ClassService
from studybot.services.dispatcher import CommandDispatcher, DispatchResult, IncomingText
from studybot.services.messages import MessageLog
from studybot.services.planner import NotificationPlanner
from studybot.services.users import UserService
from studybot.services.zalo import ZaloBotClient

__all__ = [
    "AssignmentEditorPolicy",
    "AssignmentService",
    "BotConfigService",
    "ClassService",
    "CommandDispatcher",
    "DispatchResult",
    "IncomingText",
    "MessageLog",
    "NotificationPlanner",
    "UserService",
    "ZaloBotClient",
]
