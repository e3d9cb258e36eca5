from .account import Account
from .plan import Plan
from .subscription import Subscription
from .content import Content
from .playback_position import PlaybackPosition

__all__ = ["Account", "Plan", "Subscription", "Content", "PlaybackPosition"]
