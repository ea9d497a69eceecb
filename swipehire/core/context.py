"""Per-application wiring: one cache, one document store, the accessors over them."""
from dataclasses import dataclass, field

from fastapi import Request

from swipehire.core.cache import CacheStore
from swipehire.core.settings import Settings
from swipehire.services.chat import ChatAccessor
from swipehire.services.diary import DiaryAccessor
from swipehire.services.events import EventAccessor
from swipehire.services.jobs import JobAccessor
from swipehire.services.matches import MatchAccessor
from swipehire.services.notifications import NotificationAccessor
from swipehire.services.reminders import ReminderAccessor
from swipehire.services.reviews import ReviewAccessor
from swipehire.services.users import UserAccessor


@dataclass
class AppContext:
    settings: Settings
    cache: CacheStore
    store: object
    users: UserAccessor = field(init=False)
    jobs: JobAccessor = field(init=False)
    matches: MatchAccessor = field(init=False)
    notifications: NotificationAccessor = field(init=False)
    reviews: ReviewAccessor = field(init=False)
    chat: ChatAccessor = field(init=False)
    diary: DiaryAccessor = field(init=False)
    events: EventAccessor = field(init=False)
    reminders: ReminderAccessor = field(init=False)

    def __post_init__(self):
        self.users = UserAccessor(self.cache, self.store)
        self.jobs = JobAccessor(self.cache, self.store)
        self.matches = MatchAccessor(self.cache, self.store)
        self.notifications = NotificationAccessor(self.cache, self.store)
        self.reviews = ReviewAccessor(self.cache, self.store)
        self.chat = ChatAccessor(self.cache, self.store)
        self.diary = DiaryAccessor(self.cache, self.store)
        self.events = EventAccessor(self.cache, self.store)
        self.reminders = ReminderAccessor(self.cache, self.store)


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context attached to the running app."""
    return request.app.state.context
