import asyncio
from datetime import datetime, timezone

import pytest

from swipehire.core.cache_keys import ResourceType, derive_key
from swipehire.database.db import DocumentStoreConflict, DocumentStoreError, DocumentStoreTimeout
from swipehire.services.chat import ChatAccessor
from swipehire.services.diary import DiaryAccessor
from swipehire.services.events import EventAccessor
from swipehire.services.jobs import JobAccessor
from swipehire.services.matches import MatchAccessor
from swipehire.services.notifications import NotificationAccessor
from swipehire.services.reminders import ReminderAccessor
from swipehire.services.reviews import ReviewAccessor
from swipehire.services.users import UserAccessor


def seed_user(store, name="Ann", **fields):
    return store.seed(
        "users",
        name=name,
        email=f"{name.lower()}@example.com",
        firebaseUid=f"fb-{name.lower()}",
        selectedRole="jobseeker",
        **fields,
    )


def cached(cache, key):
    return cache.get(str(key))


def test_user_read_hits_cache_on_second_call(cache, store):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store))

    first = asyncio.run(users.get_user(user_id))
    second = asyncio.run(users.get_user(user_id))

    assert first == second
    assert first["user"]["name"] == "Ann"
    assert store.calls["find_one"] == 1


def test_public_user_hides_private_fields(cache, store):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store, password="hash"))
    result = asyncio.run(users.get_user(user_id))
    assert "password" not in result["user"]
    assert "firebaseUid" not in result["user"]
    assert result["user"]["_id"] == user_id


def test_missing_user_is_not_cached(cache, store):
    users = UserAccessor(cache, store)
    assert asyncio.run(users.get_user("nobody@example.com")) is None
    assert asyncio.run(users.get_user("nobody@example.com")) is None
    assert store.calls["find_one"] == 2
    assert cache.size() == 0


def test_update_user_replaces_stale_profile(cache, store):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store))
    asyncio.run(users.get_user(user_id))

    asyncio.run(users.update_user(user_id, {"name": "Bob"}))

    assert cached(cache, derive_key(ResourceType.USER, user_id)) is None
    assert asyncio.run(users.get_user(user_id))["user"]["name"] == "Bob"


def test_update_user_drops_email_and_uid_aliases(cache, store):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store))
    asyncio.run(users.get_user("ann@example.com"))
    asyncio.run(users.get_user("fb-ann"))

    asyncio.run(users.update_user(user_id, {"name": "Bob"}))

    assert asyncio.run(users.get_user("ann@example.com"))["user"]["name"] == "Bob"
    assert asyncio.run(users.get_user("fb-ann"))["user"]["name"] == "Bob"


def test_uppercase_id_reads_are_invalidated_too(cache, store):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store))
    asyncio.run(users.get_user(user_id.upper()))

    asyncio.run(users.update_user(user_id, {"name": "Bob"}))

    assert asyncio.run(users.get_user(user_id.upper()))["user"]["name"] == "Bob"


def test_create_user_refreshes_user_lists(cache, store):
    users = UserAccessor(cache, store)
    seed_user(store)
    assert len(asyncio.run(users.get_users())["users"]) == 1
    assert len(asyncio.run(users.get_jobseeker_profiles())["jobseekers"]) == 1

    asyncio.run(users.create_user({"email": "cy@example.com", "name": "Cy", "selectedRole": "jobseeker"}))

    assert len(asyncio.run(users.get_users())["users"]) == 2
    assert len(asyncio.run(users.get_jobseeker_profiles())["jobseekers"]) == 2


def test_create_job_invalidates_every_page_for_owner(cache, store):
    jobs = JobAccessor(cache, store)
    owner = str(seed_user(store))
    other = str(seed_user(store, name="Zed"))
    page1 = asyncio.run(jobs.get_user_jobs(owner, {"page": "1"}))
    asyncio.run(jobs.get_user_jobs(owner, {"page": "2"}))
    asyncio.run(jobs.get_user_jobs(other))
    asyncio.run(jobs.get_public_jobs())
    assert page1["pagination"]["total"] == 0

    asyncio.run(jobs.create_job(owner, {"title": "Engineer", "isPublic": True}))

    assert cached(cache, derive_key(ResourceType.USER_JOBS, owner, {"page": 1, "limit": 20})) is None
    assert cached(cache, derive_key(ResourceType.USER_JOBS, owner, {"page": 2, "limit": 20})) is None
    assert cached(cache, derive_key(ResourceType.PUBLIC_JOBS, params={"page": 1, "limit": 20})) is None
    assert cached(cache, derive_key(ResourceType.USER_JOBS, other, {"page": 1, "limit": 20})) is not None
    assert asyncio.run(jobs.get_user_jobs(owner))["pagination"]["total"] == 1
    assert asyncio.run(jobs.get_public_jobs())["jobs"][0]["title"] == "Engineer"


def test_public_job_filters_are_part_of_the_key(cache, store):
    jobs = JobAccessor(cache, store)
    owner = str(seed_user(store))
    asyncio.run(jobs.create_job(owner, {"title": "Engineer", "location": "Austin, TX", "isPublic": True}))
    asyncio.run(jobs.create_job(owner, {"title": "Designer", "location": "Berlin", "isPublic": True}))

    austin = asyncio.run(jobs.get_public_jobs({"location": "austin"}))
    everything = asyncio.run(jobs.get_public_jobs({}))

    assert [j["title"] for j in austin["jobs"]] == ["Engineer"]
    assert everything["pagination"]["total"] == 2


def test_job_update_by_other_user_changes_nothing(cache, store):
    jobs = JobAccessor(cache, store)
    owner = str(seed_user(store))
    intruder = str(seed_user(store, name="Eve"))
    job_id = asyncio.run(jobs.create_job(owner, {"title": "Engineer"}))["job"]["_id"]
    asyncio.run(jobs.get_user_jobs(owner))

    assert asyncio.run(jobs.update_job(job_id, intruder, {"title": "Hacked"})) is None
    assert cached(cache, derive_key(ResourceType.USER_JOBS, owner, {"page": 1, "limit": 20})) is not None


def test_update_and_delete_job_refresh_owner_list(cache, store):
    jobs = JobAccessor(cache, store)
    owner = str(seed_user(store))
    job_id = asyncio.run(jobs.create_job(owner, {"title": "Engineer"}))["job"]["_id"]
    asyncio.run(jobs.get_user_jobs(owner))

    asyncio.run(jobs.update_job(job_id, owner, {"title": "Staff Engineer"}))
    assert asyncio.run(jobs.get_user_jobs(owner))["jobs"][0]["title"] == "Staff Engineer"

    assert asyncio.run(jobs.delete_job(job_id, owner)) == {"deleted": True}
    assert asyncio.run(jobs.get_user_jobs(owner))["jobs"] == []


def test_match_status_change_reaches_both_participants(cache, store):
    matches = MatchAccessor(cache, store)
    a, b = str(seed_user(store)), str(seed_user(store, name="Bea"))
    match_id = asyncio.run(matches.create_match({"userId1": a, "userId2": b}))["match"]["_id"]
    assert asyncio.run(matches.get_user_matches(a))["matches"][0]["status"] == "pending"
    asyncio.run(matches.get_user_matches(b))

    asyncio.run(matches.update_match_status(match_id, "accepted", a))

    assert asyncio.run(matches.get_user_matches(a))["matches"][0]["status"] == "accepted"
    assert asyncio.run(matches.get_user_matches(b))["matches"][0]["status"] == "accepted"


def test_partner_profile_update_refreshes_match_list(cache, store):
    users = UserAccessor(cache, store)
    matches = MatchAccessor(cache, store)
    a, b = str(seed_user(store)), str(seed_user(store, name="Bea"))
    asyncio.run(matches.create_match({"userId1": a, "userId2": b}))
    assert asyncio.run(matches.get_user_matches(a))["matches"][0]["user2"]["name"] == "Bea"

    asyncio.run(users.update_user(b, {"name": "Beatrice"}))

    assert asyncio.run(matches.get_user_matches(a))["matches"][0]["user2"]["name"] == "Beatrice"


def test_create_match_rejects_invalid_ids(cache, store):
    matches = MatchAccessor(cache, store)
    assert asyncio.run(matches.create_match({"userId1": "nope", "userId2": "nope"})) is None
    assert store.calls["insert_one"] == 0


def test_notifications_summary_follows_reads(cache, store):
    notifications = NotificationAccessor(cache, store)
    user_id = str(seed_user(store))
    first = asyncio.run(notifications.create_notification(user_id, {"type": "match", "title": "New match"}))
    asyncio.run(notifications.create_notification(user_id, {"type": "job", "title": "New job"}))
    assert asyncio.run(notifications.get_notifications(user_id))["summary"] == {"total": 2, "unread": 2, "read": 0}

    asyncio.run(notifications.mark_as_read(first["notification"]["_id"]))
    assert asyncio.run(notifications.get_notifications(user_id))["summary"] == {"total": 2, "unread": 1, "read": 1}

    assert asyncio.run(notifications.mark_all_as_read(user_id)) == {"modifiedCount": 1}
    summary = asyncio.run(notifications.get_notifications(user_id))["summary"]
    assert summary["unread"] == 0


def test_notification_filters(cache, store):
    notifications = NotificationAccessor(cache, store)
    user_id = str(seed_user(store))
    asyncio.run(notifications.create_notification(user_id, {"type": "match", "title": "A"}))
    asyncio.run(notifications.create_notification(user_id, {"type": "job", "title": "B"}))

    result = asyncio.run(notifications.get_notifications(user_id, {"type": "job", "isRead": "false"}))

    assert [n["title"] for n in result["notifications"]] == ["B"]


def test_review_creation_refreshes_list_and_summary(cache, store):
    reviews = ReviewAccessor(cache, store)
    company = str(seed_user(store, name="Acme"))
    ann, bea = str(seed_user(store)), str(seed_user(store, name="Bea"))
    assert asyncio.run(reviews.get_company_review_summary(company))["totalReviews"] == 0
    asyncio.run(reviews.get_company_reviews(company))

    asyncio.run(reviews.create_review(company, {"reviewerId": ann, "rating": 5, "comment": "Great"}))
    asyncio.run(reviews.create_review(company, {"reviewerId": bea, "rating": 4}))

    summary = asyncio.run(reviews.get_company_review_summary(company))
    assert summary == {"totalReviews": 2, "averageRating": 4.5, "ratingDistribution": [0, 0, 0, 1, 1]}
    listed = asyncio.run(reviews.get_company_reviews(company))["reviews"]
    assert len(listed) == 2
    assert {r["reviewerName"] for r in listed} == {"Ann", "Bea"}


def test_second_review_from_same_reviewer_conflicts(cache, store):
    reviews = ReviewAccessor(cache, store)
    company = str(seed_user(store, name="Acme"))
    reviewer = str(seed_user(store))
    asyncio.run(reviews.create_review(company, {"reviewerId": reviewer, "rating": 5}))
    asyncio.run(reviews.get_company_review_summary(company))

    with pytest.raises(DocumentStoreConflict):
        asyncio.run(reviews.create_review(company, {"reviewerId": reviewer, "rating": 1}))

    assert asyncio.run(reviews.get_company_review_summary(company))["totalReviews"] == 1
    assert store.calls["aggregate"] == 1


def test_reviews_from_deleted_accounts_are_hidden(cache, store):
    reviews = ReviewAccessor(cache, store)
    company = str(seed_user(store, name="Acme"))
    ghost = str(seed_user(store, name="Ghost"))
    asyncio.run(reviews.create_review(company, {"reviewerId": ghost, "rating": 1}))
    store.collections["users"] = [u for u in store.collections["users"] if str(u["_id"]) != ghost]

    assert asyncio.run(reviews.get_company_reviews(company))["reviews"] == []


def test_chat_messages_oldest_first_and_refreshed_on_send(cache, store):
    chat = ChatAccessor(cache, store)
    a = str(seed_user(store))
    match_id = str(store.seed("matches", userId1=a))
    store.seed("chatmessages", matchId=match_id, senderId=a, message="second", createdAt=datetime(2024, 1, 1, 9, 5, tzinfo=timezone.utc))
    store.seed("chatmessages", matchId=match_id, senderId=a, message="first", createdAt=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc))
    assert [m["message"] for m in asyncio.run(chat.get_chat_messages(match_id))["messages"]] == ["first", "second"]

    asyncio.run(chat.create_chat_message(match_id, a, "third"))

    messages = asyncio.run(chat.get_chat_messages(match_id))["messages"]
    assert [m["message"] for m in messages] == ["first", "second", "third"]


def test_diary_post_update_and_delete(cache, store):
    diary = DiaryAccessor(cache, store)
    owner = str(seed_user(store))
    post_id = asyncio.run(diary.create_diary_post(owner, {"title": "Day 1", "content": "Applied"}))["post"]["_id"]
    assert asyncio.run(diary.get_diary_post(post_id))["post"]["content"] == "Applied"
    asyncio.run(diary.get_diary_posts(owner))

    asyncio.run(diary.update_diary_post(post_id, owner, {"content": "Interviewed"}))
    assert asyncio.run(diary.get_diary_post(post_id))["post"]["content"] == "Interviewed"
    assert asyncio.run(diary.get_diary_posts(owner))["posts"][0]["content"] == "Interviewed"

    asyncio.run(diary.delete_diary_post(post_id, owner))
    assert asyncio.run(diary.get_diary_post(post_id)) is None
    assert asyncio.run(diary.get_diary_posts(owner))["pagination"]["total"] == 0


def test_event_update_refreshes_list_and_detail(cache, store):
    events = EventAccessor(cache, store)
    event_id = asyncio.run(events.create_event({"title": "Job Fair", "industry": "tech"}))["event"]["_id"]
    assert asyncio.run(events.get_industry_events({"industry": "tech"}))["pagination"]["total"] == 1
    asyncio.run(events.get_event(event_id))

    asyncio.run(events.update_event(event_id, {"title": "Tech Job Fair"}))

    assert asyncio.run(events.get_event(event_id))["event"]["title"] == "Tech Job Fair"
    assert asyncio.run(events.get_industry_events({"industry": "tech"}))["events"][0]["title"] == "Tech Job Fair"


def test_reminder_writes_refresh_list(cache, store):
    reminders = ReminderAccessor(cache, store)
    owner = str(seed_user(store))
    assert asyncio.run(reminders.get_reminders(owner))["reminders"] == []

    reminder_id = asyncio.run(reminders.create_reminder(owner, {"title": "Follow up", "status": "pending"}))["reminder"]["_id"]
    assert asyncio.run(reminders.get_reminders(owner, {"status": "pending"}))["pagination"]["total"] == 1

    asyncio.run(reminders.update_reminder(reminder_id, owner, {"status": "done"}))
    assert asyncio.run(reminders.get_reminders(owner, {"status": "pending"}))["pagination"]["total"] == 0

    asyncio.run(reminders.delete_reminder(reminder_id, owner))
    assert asyncio.run(reminders.get_reminders(owner))["reminders"] == []


def test_store_failure_propagates_and_caches_nothing(cache, store):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store))
    store.fail_with = DocumentStoreTimeout("users.find_one timed out")

    with pytest.raises(DocumentStoreTimeout):
        asyncio.run(users.get_user(user_id))
    assert cache.size() == 0

    store.fail_with = None
    assert asyncio.run(users.get_user(user_id))["user"]["name"] == "Ann"


def test_failed_write_leaves_cache_alone(cache, store):
    jobs = JobAccessor(cache, store)
    owner = str(seed_user(store))
    asyncio.run(jobs.get_user_jobs(owner))
    store.fail_with = DocumentStoreError("connection refused")

    with pytest.raises(DocumentStoreError):
        asyncio.run(jobs.create_job(owner, {"title": "Engineer"}))
    assert cached(cache, derive_key(ResourceType.USER_JOBS, owner, {"page": 1, "limit": 20})) is not None


def test_invalidation_failure_does_not_fail_write(cache, store, monkeypatch):
    jobs = JobAccessor(cache, store)
    owner = str(seed_user(store))

    def broken(scope):
        raise RuntimeError("cache unreachable")

    monkeypatch.setattr(cache, "invalidate_scope", broken)

    result = asyncio.run(jobs.create_job(owner, {"title": "Engineer"}))

    assert result["job"]["title"] == "Engineer"
    assert store.calls["insert_one"] == 1


def test_cache_lookup_failure_is_a_miss(cache, store, monkeypatch):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store))

    def broken(key):
        raise RuntimeError("cache unreachable")

    monkeypatch.setattr(cache, "get", broken)

    assert asyncio.run(users.get_user(user_id))["user"]["name"] == "Ann"
    assert store.calls["find_one"] == 1


def test_entries_expire_with_their_tier(cache, store, clock):
    notifications = NotificationAccessor(cache, store)
    user_id = str(seed_user(store))
    asyncio.run(notifications.get_notifications(user_id))
    store.seed("notifications", userId=user_id, type="job", title="Out of band", isRead=False)

    clock.advance(4)
    assert asyncio.run(notifications.get_notifications(user_id))["summary"]["total"] == 0
    clock.advance(1)
    assert asyncio.run(notifications.get_notifications(user_id))["summary"]["total"] == 1


def test_read_in_flight_during_write_is_not_cached(cache, store):
    users = UserAccessor(cache, store)
    user_id = str(seed_user(store))
    store.read_delay = 0.05

    async def read_racing_write():
        reader = asyncio.create_task(users.get_user(user_id))
        await asyncio.sleep(0.01)
        await users.update_user(user_id, {"name": "Bob"})
        in_flight = await reader
        after = await users.get_user(user_id)
        return in_flight, after

    in_flight, after = asyncio.run(read_racing_write())

    assert in_flight["user"]["name"] == "Ann"
    assert after["user"]["name"] == "Bob"


def test_list_read_in_flight_during_partner_update_is_not_cached(cache, store):
    users = UserAccessor(cache, store)
    matches = MatchAccessor(cache, store)
    a, b = str(seed_user(store)), str(seed_user(store, name="Bea"))
    asyncio.run(matches.create_match({"userId1": a, "userId2": b}))
    mark = cache.mark()

    asyncio.run(users.update_user(b, {"name": "Beatrice"}))
    stored = cache.set("matches|stale|", {"matches": []}, 10, scopes=[("user", b)], since=mark)

    assert stored is False
    assert asyncio.run(matches.get_user_matches(a))["matches"][0]["user2"]["name"] == "Beatrice"
