import anyio
import pytest

from socialnet.api.friends.schemas import Direction, FriendshipTier, RelationStatus
from socialnet.client.store import BucketStatus
from socialnet.core.config import settings

pytestmark = pytest.mark.anyio


def assert_consistent(bucket):
    pagination = bucket.pagination
    assert 1 <= pagination.current_page <= pagination.total_pages
    assert len(bucket.data) <= pagination.total_items


async def befriend(first_store, second_store, second_user):
    sent = await first_store.send_request(second_user.id)
    await second_store.accept_request(sent.data.id)
    return sent.data.id


async def test_send_request_fills_sent_bucket(make_user, make_store):
    alice, bob = make_user("alice"), make_user("bob")
    alice_store, bob_store = make_store(alice), make_store(bob)

    result = await alice_store.send_request(bob.id)

    assert result.ok
    assert alice_store.sent.ids() == [result.data.id]
    assert alice_store.sent.data[0].direction == Direction.OUTGOING
    assert alice_store.sent.pagination.total_items == 1
    assert alice_store.status_lookup.get(bob.id).status == RelationStatus.PENDING

    await bob_store.get_pending_requests()
    assert bob_store.pending.ids() == [result.data.id]
    assert bob_store.pending.data[0].direction == Direction.INCOMING
    assert bob_store.pending.status == BucketStatus.SUCCEEDED
    assert bob_store.status_lookup.get(alice.id).direction == Direction.INCOMING


async def test_accept_moves_request_to_friends(make_user, make_store):
    alice, bob = make_user("alice"), make_user("bob")
    alice_store, bob_store = make_store(alice), make_store(bob)
    sent = await alice_store.send_request(bob.id)
    await bob_store.get_pending_requests()
    await bob_store.get_friends()

    result = await bob_store.accept_request(sent.data.id)

    assert result.ok
    assert bob_store.pending.ids() == []
    assert bob_store.friends.ids() == [sent.data.id]
    assert bob_store.status_lookup.get(alice.id).status == RelationStatus.ACCEPTED
    assert bob.id not in bob_store.status_lookup
    assert_consistent(bob_store.pending)
    assert_consistent(bob_store.friends)

    await alice_store.get_friends()
    await bob_store.get_friends()
    for store in (alice_store, bob_store):
        assert store.friends.ids() == [sent.data.id]
        assert store.friends.data[0].status == "accepted"


async def test_accept_does_not_touch_foreign_friends_page(make_user, make_store):
    alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
    alice_store, bob_store = make_store(alice), make_store(bob)
    sent = await alice_store.send_request(bob.id)
    await bob_store.get_friends(carol.id)

    await bob_store.accept_request(sent.data.id)

    assert bob_store.friends.owner_id == carol.id
    assert bob_store.friends.ids() == []


async def test_repeated_removal_is_harmless(make_user, make_store):
    alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
    alice_store, bob_store = make_store(alice), make_store(bob)
    friendship_id = await befriend(alice_store, bob_store, bob)
    await alice_store.send_request(carol.id)
    await alice_store.get_friends()
    sent_before = alice_store.sent.ids()

    assert (await alice_store.remove_friend(friendship_id)).ok
    second = await alice_store.remove_friend(friendship_id)

    assert not second.ok
    assert second.error.code == "FRIENDSHIP_NOT_FOUND"
    assert alice_store.friends.ids() == []
    assert alice_store.friends.error.code == "FRIENDSHIP_NOT_FOUND"
    assert alice_store.sent.ids() == sent_before
    assert alice_store.status_lookup.get(bob.id).status == RelationStatus.NONE
    assert_consistent(alice_store.friends)


async def test_cancel_and_reject(make_user, make_store):
    alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
    alice_store, bob_store = make_store(alice), make_store(bob)
    to_bob = await alice_store.send_request(bob.id)
    to_carol = await alice_store.send_request(carol.id)

    assert (await alice_store.cancel_request(to_carol.data.id)).ok
    assert alice_store.sent.ids() == [to_bob.data.id]
    assert alice_store.status_lookup.get(carol.id).status == RelationStatus.NONE
    assert not (await alice_store.cancel_request(to_carol.data.id)).ok
    assert alice_store.sent.ids() == [to_bob.data.id]

    await bob_store.get_pending_requests()
    result = await bob_store.reject_request(to_bob.data.id)

    assert result.ok
    assert result.data.status == "rejected"
    assert bob_store.pending.ids() == []
    assert bob_store.status_lookup.get(alice.id).status == RelationStatus.REJECTED


async def test_pending_pagination(make_user, make_store):
    target = make_user("target")
    for _ in range(25):
        sender = make_user()
        assert (await make_store(sender).send_request(target.id)).ok
    store = make_store(target)

    await store.get_pending_requests(page=1, size=10)

    assert store.pending.pagination.total_pages == 3
    assert store.pending.pagination.total_items == 25
    assert len(store.pending.data) == 10

    await store.accept_request(store.pending.data[0].id)
    assert store.pending.pagination.total_items == 24
    assert_consistent(store.pending)


async def test_block_removes_friend_locally(make_user, make_store):
    alice, bob = make_user("alice"), make_user("bob")
    alice_store, bob_store = make_store(alice), make_store(bob)
    await befriend(alice_store, bob_store, bob)
    await alice_store.get_friends()
    assert len(alice_store.friends.data) == 1

    result = await alice_store.block_user(bob.id)

    assert result.ok
    assert alice_store.friends.data == []
    assert alice_store.friends.pagination.total_items == 0
    assert alice_store.status_lookup.get(bob.id).status == RelationStatus.BLOCKED

    assert (await alice_store.unblock_user(bob.id)).ok
    assert alice_store.status_lookup.get(bob.id).status == RelationStatus.NONE


async def test_update_tier_in_place(make_user, make_store):
    alice, bob = make_user("alice"), make_user("bob")
    alice_store, bob_store = make_store(alice), make_store(bob)
    friendship_id = await befriend(alice_store, bob_store, bob)
    await alice_store.get_friends()
    await alice_store.get_friends_by_tier(FriendshipTier.ACQUAINTANCES)

    result = await alice_store.update_tier(friendship_id, FriendshipTier.CUSTOM, "Gym")

    assert result.ok
    assert alice_store.friends.data[0].tier == FriendshipTier.CUSTOM
    assert alice_store.friends.data[0].custom_tier_label == "Gym"
    assert alice_store.by_tier.ids() == []

    await alice_store.get_friends_by_tier(FriendshipTier.CUSTOM)
    assert alice_store.by_tier.ids() == [friendship_id]


async def test_failed_fetch_keeps_previous_data(make_user, make_store):
    alice, bob = make_user("alice"), make_user("bob")
    alice_store, bob_store = make_store(alice), make_store(bob)
    await befriend(alice_store, bob_store, bob)
    await alice_store.get_friends()

    result = await alice_store.get_friends(9999)

    assert not result.ok
    assert alice_store.friends.status == BucketStatus.FAILED
    assert alice_store.friends.error.code == "USER_NOT_FOUND"
    assert len(alice_store.friends.data) == 1


async def test_failed_action_reports_error(make_user, make_store):
    alice = make_user("alice")
    store = make_store(alice)

    result = await store.send_request(alice.id)

    assert not result.ok
    assert result.error.code == "SELF_ACTION"
    assert store.sent.error.code == "SELF_ACTION"
    assert store.sent.data == []

    assert not (await store.unblock_user(9999)).ok
    assert store.last_error.code == "BLOCK_NOT_FOUND"


async def test_mutual_friends_and_suggestions(make_user, make_store):
    alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
    alice_store, bob_store, carol_store = make_store(alice), make_store(bob), make_store(carol)
    await befriend(alice_store, bob_store, bob)
    await befriend(carol_store, bob_store, bob)

    await alice_store.get_mutual_friends(carol.id)
    await alice_store.get_friend_suggestions()

    assert [user.username for user in alice_store.mutual.data] == ["bob"]
    assert alice_store.mutual.owner_id == carol.id
    assert [(s.username, s.mutual_count) for s in alice_store.suggestions] == [("carol", 1)]
    assert alice_store.suggestions_status == BucketStatus.SUCCEEDED


async def test_status_lookup_expires(make_user, make_store):
    now = [0.0]
    alice, bob = make_user("alice"), make_user("bob")
    alice_store = make_store(alice, status_ttl=30, clock=lambda: now[0])
    bob_store = make_store(bob)

    entry = await alice_store.status_of(bob.id)
    assert entry.status == RelationStatus.NONE

    await bob_store.send_request(alice.id)
    assert (await alice_store.status_of(bob.id)).status == RelationStatus.NONE

    now[0] = 31.0
    refreshed = await alice_store.status_of(bob.id)
    assert refreshed.status == RelationStatus.PENDING
    assert refreshed.direction == Direction.INCOMING


async def test_cleanup_and_reset(make_user, make_store):
    alice, bob = make_user("alice"), make_user("bob")
    store = make_store(alice)
    await store.send_request(bob.id)

    denied = await store.cleanup_expired_requests("wrong")
    assert not denied.ok
    assert denied.error.code == "FORBIDDEN"

    result = await store.cleanup_expired_requests(settings.ADMIN_KEY)
    assert result.ok
    assert result.data == 0
    assert bob.id in store.status_lookup

    store.reset()
    assert store.sent.data == []
    assert len(store.status_lookup) == 0


async def test_unknown_tier_is_reported_on_bucket(make_user, make_store):
    alice, bob = make_user("alice"), make_user("bob")
    alice_store, bob_store = make_store(alice), make_store(bob)
    friendship_id = await befriend(alice_store, bob_store, bob)
    await alice_store.get_friends_by_tier(FriendshipTier.ACQUAINTANCES)

    updated = await alice_store.update_tier(friendship_id, "bogus")
    assert not updated.ok
    assert updated.error.code == "VALIDATION_ERROR"
    assert alice_store.friends.error.code == "VALIDATION_ERROR"

    fetched = await alice_store.get_friends_by_tier("bogus")
    assert not fetched.ok
    assert alice_store.by_tier.status == BucketStatus.FAILED
    assert alice_store.by_tier.error.code == "VALIDATION_ERROR"
    assert alice_store.by_tier.ids() == [friendship_id]


async def test_concurrent_fetches_fill_own_buckets(make_user, make_store):
    alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
    alice_store = make_store(alice)
    outgoing = await alice_store.send_request(bob.id)
    incoming = await make_store(carol).send_request(alice.id)
    alice_store.reset()

    async with anyio.create_task_group() as tg:
        tg.start_soon(alice_store.get_pending_requests)
        tg.start_soon(alice_store.get_sent_requests)
        tg.start_soon(alice_store.get_friends)

    assert alice_store.pending.ids() == [incoming.data.id]
    assert alice_store.sent.ids() == [outgoing.data.id]
    assert alice_store.friends.ids() == []
    for bucket in (alice_store.pending, alice_store.sent, alice_store.friends):
        assert bucket.status == BucketStatus.SUCCEEDED
        assert bucket.error is None


async def test_fetch_drops_stale_status_entries(make_user, make_store):
    now = [0.0]
    alice, bob = make_user("alice"), make_user("bob")
    store = make_store(alice, status_ttl=30, clock=lambda: now[0])
    await store.check_friendship_status(bob.id)
    assert len(store.status_lookup) == 1

    now[0] = 31.0
    await store.get_friends()

    assert len(store.status_lookup) == 0
