from socialnet.client.api import FriendshipApi
from socialnet.client.cache import StatusCache, StatusEntry
from socialnet.client.errors import ErrorInfo, FriendshipApiError, get_friendly_error_message
from socialnet.client.store import ActionResult, Bucket, BucketStatus, FriendshipStore

__all__ = [
    "ActionResult",
    "Bucket",
    "BucketStatus",
    "ErrorInfo",
    "FriendshipApi",
    "FriendshipApiError",
    "FriendshipStore",
    "StatusCache",
    "StatusEntry",
    "get_friendly_error_message",
]
