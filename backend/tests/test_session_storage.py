import pytest
import redis

from _helpers import FixedClock

from emily_booking.booking.state import BookingStateStore
from emily_booking.session import RedisSessionStorage, StorageError, create_session_storage


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str):
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: bytes) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def ping(self) -> bool:
        return True


class DownRedis(FakeRedis):
    def get(self, key: str):
        raise redis.ConnectionError("connection refused")

    def setex(self, key: str, ttl: int, value: bytes) -> None:
        raise redis.ConnectionError("connection refused")

    def ping(self) -> bool:
        raise redis.ConnectionError("connection refused")


def test_redis_storage_scopes_keys_by_session_and_sets_ttl():
    client = FakeRedis()
    storage = RedisSessionStorage(client, "sess-1", ttl_seconds=600)

    storage.set_item("emilyBookingState", '{"adults": 3}')

    assert client.data == {"emily:sess:sess-1:emilyBookingState": b'{"adults": 3}'}
    assert client.ttls["emily:sess:sess-1:emilyBookingState"] == 600
    assert storage.get_item("emilyBookingState") == '{"adults": 3}'
    assert RedisSessionStorage(client, "sess-2", ttl_seconds=600).get_item("emilyBookingState") is None

    storage.remove_item("emilyBookingState")
    assert client.data == {}


def test_redis_errors_become_storage_errors():
    storage = RedisSessionStorage(DownRedis(), "sess-1", ttl_seconds=600)

    with pytest.raises(StorageError):
        storage.get_item("emilyBookingState")
    with pytest.raises(StorageError):
        storage.set_item("emilyBookingState", "{}")
    assert storage.ping() is False


def test_store_survives_redis_outage():
    store = BookingStateStore(RedisSessionStorage(DownRedis(), "sess-1", ttl_seconds=600))

    store.init("adults=3")

    assert store.get("adults") == 3


def test_draft_survives_a_new_store_over_redis():
    client = FakeRedis()
    clock = FixedClock()
    first = BookingStateStore(RedisSessionStorage(client, "sess-1", ttl_seconds=600), clock=clock)
    first.set(check_in="2030-01-10", check_out="2030-01-12")
    first.create_pending_booking("BK-5")

    second = BookingStateStore(RedisSessionStorage(client, "sess-1", ttl_seconds=600), clock=clock)
    second.init()

    assert second.pending_booking.booking_id == "BK-5"
    assert second.get_nights() == 2


def test_in_memory_storage_is_shared_per_session_id():
    first = create_session_storage("sess-a")
    first.set_item("key", "value")

    assert create_session_storage("sess-a").get_item("key") == "value"
    assert create_session_storage("sess-b").get_item("key") is None


def test_in_memory_sessions_are_not_evicted():
    create_session_storage("sess-first").set_item("key", "kept")
    for index in range(300):
        create_session_storage(f"sess-bulk-{index}")

    assert create_session_storage("sess-first").get_item("key") == "kept"
