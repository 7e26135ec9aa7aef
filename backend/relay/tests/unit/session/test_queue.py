import pytest

from relay.rules.types import Side
from relay.session.exceptions import AlreadyQueuedOrInGameError, NotQueuedError, PairingFailedError
from relay.tests.mocks import MockConnection

from .helpers import start_session


def join(registry, queue, conn=None):
    conn = conn or MockConnection()
    token = registry.register(conn)
    queue.enqueue(conn, token)
    return conn


class TestEnqueue:
    def test_enqueue_appends_in_arrival_order(self, registry, queue):
        a = join(registry, queue)
        b = join(registry, queue)

        assert queue.tokens == [registry.token_for(a), registry.token_for(b)]
        assert a in queue

    def test_duplicate_enqueue_rejected_without_change(self, registry, queue):
        conn = join(registry, queue)

        with pytest.raises(AlreadyQueuedOrInGameError):
            queue.enqueue(conn, registry.token_for(conn))

        assert len(queue) == 1

    def test_enqueue_while_in_session_rejected(self, queue, session_store, rules_engine):
        _, first, _ = start_session(session_store, rules_engine)

        with pytest.raises(AlreadyQueuedOrInGameError):
            queue.enqueue(first, "player_first")

        assert len(queue) == 0


class TestDequeue:
    async def test_dequeue_notifies_remaining(self, registry, queue):
        a = join(registry, queue)
        b = join(registry, queue)

        await queue.dequeue(a)

        assert a not in queue
        assert b.sent_messages == [{"type": "queue_status", "players_in_queue": 1, "message": "Queue updated."}]
        assert a.sent_messages == []

    async def test_dequeue_when_not_queued_raises(self, queue):
        with pytest.raises(NotQueuedError):
            await queue.dequeue(MockConnection())

    def test_discard_is_silent(self, registry, queue):
        conn = join(registry, queue)

        assert queue.discard(conn) is True
        assert queue.discard(conn) is False
        assert conn.sent_messages == []


class TestTryMatchAll:
    async def test_single_entry_keeps_waiting(self, registry, queue, session_store):
        conn = join(registry, queue)

        created = await queue.try_match_all()

        assert created == []
        assert len(session_store) == 0
        assert conn.sent_messages == [
            {"type": "queue_status", "players_in_queue": 1, "message": "Still waiting for an opponent..."},
        ]

    async def test_pair_creates_session_and_announces(self, registry, queue, session_store):
        a = join(registry, queue)
        b = join(registry, queue)
        bystander = MockConnection()
        registry.register(bystander)

        [session] = await queue.try_match_all()

        assert len(queue) == 0
        assert session_store.get(session.session_id) is session
        start_a = a.messages_of_type("game_start")[0]
        start_b = b.messages_of_type("game_start")[0]
        assert start_a["side"] == "first"
        assert start_a["side_name"] == "First"
        assert start_a["message"] == "Game started! You are First. It's your turn."
        assert start_b["side"] == "second"
        assert start_b["message"] == "Game started! You are Second. Waiting for First's move."
        assert start_a["session_id"] == start_b["session_id"] == session.session_id
        assert start_a["position"] == start_b["position"] == "start"
        assert start_a["players"] == [registry.token_for(a), registry.token_for(b)]
        # everyone connected hears the new queue size
        for conn in (a, b, bystander):
            assert conn.messages_of_type("queue_status")[-1]["players_in_queue"] == 0

    async def test_coin_flip_can_give_first_move_to_later_entry(self, registry, queue, coin):
        coin.heads = False
        a = join(registry, queue)
        b = join(registry, queue)

        [session] = await queue.try_match_all()

        assert session.participant_for(b).side is Side.FIRST
        assert session.participant_for(a).side is Side.SECOND

    @pytest.mark.parametrize(("queued", "sessions", "left"), [(2, 1, 0), (3, 1, 1), (4, 2, 0), (7, 3, 1)])
    async def test_pairs_consume_exactly_two(self, registry, queue, session_store, queued, sessions, left):
        conns = [join(registry, queue) for _ in range(queued)]

        created = await queue.try_match_all()

        assert len(created) == sessions
        assert len(session_store) == sessions
        assert len(queue) == left
        if left:
            assert conns[-1] in queue

    async def test_every_session_has_one_of_each_side(self, registry, queue):
        for _ in range(6):
            join(registry, queue)

        for session in await queue.try_match_all():
            assert {p.side for p in session.participants} == {Side.FIRST, Side.SECOND}

    async def test_matched_connection_cannot_requeue(self, registry, queue):
        a = join(registry, queue)
        join(registry, queue)
        await queue.try_match_all()

        with pytest.raises(AlreadyQueuedOrInGameError):
            queue.enqueue(a, registry.token_for(a))

    @pytest.mark.parametrize("failing_call", ["initial_position_error", "side_name_error"])
    async def test_engine_failure_keeps_pair_queued(self, registry, queue, session_store, rules_engine, failing_call):
        a = join(registry, queue)
        b = join(registry, queue)
        setattr(rules_engine, failing_call, RuntimeError("engine failed to build start position"))

        with pytest.raises(PairingFailedError):
            await queue.try_match_all()

        assert queue.tokens == [registry.token_for(a), registry.token_for(b)]
        assert len(session_store) == 0
        assert a.messages_of_type("game_start") == []

        setattr(rules_engine, failing_call, None)
        [session] = await queue.try_match_all()

        assert session.has_connection(a)
        assert session.has_connection(b)

    async def test_engine_failure_after_first_pair_keeps_session(self, registry, queue, session_store, rules_engine):
        conns = [join(registry, queue) for _ in range(4)]
        original = rules_engine.initial_position
        calls = 0

        def flaky_initial_position():
            nonlocal calls
            calls += 1
            if calls > 1:
                raise RuntimeError("engine failed to build start position")
            return original()

        rules_engine.initial_position = flaky_initial_position

        with pytest.raises(PairingFailedError):
            await queue.try_match_all()

        assert len(session_store) == 1
        assert queue.tokens == [registry.token_for(c) for c in conns[2:]]
        assert conns[0].messages_of_type("game_start")
