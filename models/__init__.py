from .message import Attachment, Message, Conversation
from .user_profile import UserProfile, touch, utcnow
from .user_settings import UserSettings, THEMES, PROFILE_VISIBILITIES
from .image_detection import ImageDetectionResult, ImageDetectionResponse, ParsedResult

__all__ = [
    "Attachment",
    "Message",
    "Conversation",
    "UserProfile",
    "UserSettings",
    "THEMES",
    "PROFILE_VISIBILITIES",
    "touch",
    "utcnow",
    "ImageDetectionResult",
    "ImageDetectionResponse",
    "ParsedResult",
]
