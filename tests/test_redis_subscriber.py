import asyncio

from death_draft.converter import PICKS_TABLE, STATE_TABLE
from death_draft.domain.changes import ChangeFilter
from death_draft.models.dc_models import ChangeEventModel, ChangeEventType
from death_draft.redis_subscriber import CHANGE_CHANNEL, RedisSubscriber, Subscription, publish_change


def pick_insert(pick_number=1):
    return ChangeEventModel(event_type=ChangeEventType.insert, table=PICKS_TABLE, new={"pick_number": pick_number})


class FakePubSub:
    def __init__(self, messages=None, fail=False):
        self.messages = list(messages or [])
        self.fail = fail
        self.subscribed = []
        self.closed = False

    async def subscribe(self, channel):
        self.subscribed.append(channel)

    async def get_message(self, ignore_subscribe_messages=False, timeout=None):
        if self.fail:
            raise ConnectionError("connection lost")
        if self.messages:
            return self.messages.pop(0)
        await asyncio.sleep(0.01)
        return None

    async def unsubscribe(self, channel):
        self.subscribed.remove(channel)

    async def aclose(self):
        self.closed = True


class FakePubSubRedis:
    def __init__(self, pubsub):
        self._pubsub = pubsub

    def pubsub(self):
        return self._pubsub


class Recorder:
    def __init__(self):
        self.events = []
        self.statuses = []
        self.malformed = 0

    async def handler(self, event):
        self.events.append(event)

    def on_status(self, status):
        self.statuses.append(status)

    async def on_malformed(self):
        self.malformed += 1


def make_subscription(recorder, filters=None):
    return Subscription(
        "test",
        filters or [ChangeFilter(table=PICKS_TABLE)],
        recorder.handler,
        recorder.on_status,
        recorder.on_malformed,
    )


def test_deliver_filters_events():
    recorder = Recorder()
    subscription = make_subscription(recorder)

    async def scenario():
        await subscription.deliver(pick_insert().model_dump_json(by_alias=True))
        other = ChangeEventModel(event_type=ChangeEventType.update, table=STATE_TABLE, new={"id": 1})
        await subscription.deliver(other.model_dump_json(by_alias=True))

    asyncio.run(scenario())
    assert [e.new["pick_number"] for e in recorder.events] == [1]
    assert recorder.malformed == 0


def test_malformed_payload_and_failing_handler_recover():
    recorder = Recorder()

    async def broken(event):
        raise KeyError("pick_number")

    subscription = Subscription("test", [ChangeFilter(table=PICKS_TABLE)], broken, None, recorder.on_malformed)

    async def scenario():
        await subscription.deliver("{")
        await subscription.deliver('{"event_type": "TRUNCATE", "table": "x"}')
        await subscription.deliver(pick_insert().model_dump_json(by_alias=True))

    asyncio.run(scenario())
    assert recorder.malformed == 3


def test_publish_change_uses_channel(fake_redis):
    asyncio.run(publish_change(fake_redis, pick_insert(3)))
    channel, raw = fake_redis.published[0]
    assert channel == CHANGE_CHANNEL
    assert ChangeEventModel.model_validate_json(raw).new == {"pick_number": 3}


def test_listener_delivers_and_closes():
    recorder = Recorder()
    messages = [
        {"type": "message", "data": pick_insert(1).model_dump_json(by_alias=True)},
        {"type": "message", "data": pick_insert(2).model_dump_json(by_alias=True)},
    ]
    pubsub = FakePubSub(messages)
    subscriber = RedisSubscriber(FakePubSubRedis(pubsub))

    async def scenario():
        subscription = subscriber.subscribe(
            "test", [ChangeFilter(table=PICKS_TABLE)], recorder.handler, recorder.on_status, recorder.on_malformed
        )
        for _ in range(100):
            if len(recorder.events) == 2:
                break
            await asyncio.sleep(0.01)
        await subscription.close()
        return subscription

    subscription = asyncio.run(scenario())
    assert [e.new["pick_number"] for e in recorder.events] == [1, 2]
    assert recorder.statuses == ["connecting", "subscribed", "closed"]
    assert subscription.status == "closed"
    assert pubsub.closed
    assert pubsub.subscribed == []


def test_listener_reports_channel_error():
    recorder = Recorder()
    subscriber = RedisSubscriber(FakePubSubRedis(FakePubSub(fail=True)))

    async def scenario():
        subscription = subscriber.subscribe("test", [ChangeFilter(table=PICKS_TABLE)], recorder.handler, recorder.on_status)
        await asyncio.gather(subscription.task, return_exceptions=True)
        return subscription

    subscription = asyncio.run(scenario())
    assert subscription.status == "channel_error"
    assert recorder.statuses == ["connecting", "subscribed", "channel_error"]


def test_listener_reports_subscribe_timeout(monkeypatch):
    import death_draft.redis_subscriber as redis_subscriber

    class HangingPubSub(FakePubSub):
        async def subscribe(self, channel):
            await asyncio.sleep(1)

    monkeypatch.setattr(redis_subscriber, "HEART_BEAT", 0.01)
    recorder = Recorder()
    pubsub = HangingPubSub()
    subscriber = RedisSubscriber(FakePubSubRedis(pubsub))

    async def scenario():
        subscription = subscriber.subscribe("test", [ChangeFilter(table=PICKS_TABLE)], recorder.handler, recorder.on_status)
        await asyncio.gather(subscription.task, return_exceptions=True)
        return subscription

    subscription = asyncio.run(scenario())
    assert subscription.status == "timed_out"
    assert recorder.statuses == ["connecting", "timed_out"]
