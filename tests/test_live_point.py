# Area: Live Tests
"""Tests for LivePoint: range memory, assignment memory, range transitions."""

import asyncio

import pytest

from maris_live._live.assignment_filter import ACTIVE_FILTER, OPEN_FILTER
from maris_live._live.point import LivePoint, PointNotInGameError, RangeState
from maris_live._realtime.packet_type import PacketType
from maris_live._shared.models import ApprovalState, GameStage, SubmissionRecord
from maris_live.config import LiveConfig
from maris_live.errors import InvalidReferenceError, PersistenceError


def run_scenario(world, body):
    """Load the world, then run ``body(game, point, player)`` in one event loop."""
    async def scenario():
        game = await world.load()
        point = game.point_manager.get_loaded_point(world.POINT)
        player = await game.get_user(world.PLAYER)
        return await body(game, point, player)

    return asyncio.run(scenario())


class TestRangeMemory:
    """Remembered in-range state per user."""

    def test_malformed_id_rejected(self, world):
        game = asyncio.run(world.load())
        with pytest.raises(InvalidReferenceError):
            LivePoint("fountain", game)

    def test_default_out_of_range(self, world):
        game = asyncio.run(world.load())
        point = game.point_manager.get_loaded_point(world.POINT)
        assert not point.is_in_range_memory(world.PLAYER)
        assert point.get_range_state(world.PLAYER) is RangeState.OUT_OF_RANGE

    def test_set_is_idempotent(self, world):
        game = asyncio.run(world.load())
        point = game.point_manager.get_loaded_point(world.POINT)

        assert point.set_in_range_memory(world.PLAYER, True) is True
        assert point.set_in_range_memory(world.PLAYER, True) is False
        assert point.get_range_state(world.PLAYER) is RangeState.IN_RANGE
        assert point.get_in_range_user_ids() == frozenset({world.PLAYER})

        assert point.set_in_range_memory(world.PLAYER, False) is True
        assert point.set_in_range_memory(world.PLAYER, False) is False
        assert point.get_in_range_user_ids() == frozenset()


class TestAssignmentMemory:
    """Remembered assignments per user."""

    def test_set_deduplicates_and_keeps_order(self, world):
        a1, a2, a3, _ = world.ASSIGNMENTS

        async def body(game, point, player):
            point.set_user_assignments(player, [a2, a1, a2, a3])
            return await point.get_user_assignment_ids(player)

        assert run_scenario(world, body) == [a2, a1, a3]

    def test_remove_subset_and_all(self, world):
        a1, a2, a3, _ = world.ASSIGNMENTS

        async def body(game, point, player):
            point.set_user_assignments(player, [a1, a2, a3])
            removed = point.remove_user_assignments(player, [a2, world.ASSIGNMENTS[3]])
            remaining = await point.get_user_assignment_ids(player)
            removed_all = point.remove_user_assignments(player)
            return removed, remaining, removed_all, await point.has_user_assignments(player)

        assert run_scenario(world, body) == (1, [a1, a3], 2, False)

    def test_clear_user_forgets_everything(self, world):
        async def body(game, point, player):
            point.set_in_range_memory(player, True)
            point.set_user_assignments(player, world.ASSIGNMENTS[:2])
            point.clear_user(player)
            return point.is_in_range_memory(player), await point.get_user_assignment_count(player)

        assert run_scenario(world, body) == (False, 0)

    def test_filter_by_submission_state(self, world):
        a1, a2, a3, a4 = world.ASSIGNMENTS
        world.store.add_submission(SubmissionRecord(
            id="s2", assignment_id=a2, user_id=world.PLAYER,
            approval_state=ApprovalState.PENDING,
        ))
        world.store.add_submission(SubmissionRecord(
            id="s3", assignment_id=a3, user_id=world.PLAYER,
            approval_state=ApprovalState.APPROVED,
        ))
        # Another user's submission must not close a1 for the player
        world.store.add_submission(SubmissionRecord(
            id="s1", assignment_id=a1, user_id=world.OTHER_PLAYER,
            approval_state=ApprovalState.APPROVED,
        ))

        async def body(game, point, player):
            point.set_user_assignments(player, [a1, a2, a3])
            return (
                await point.get_user_assignment_ids(player, OPEN_FILTER),
                await point.get_user_assignment_ids(player, ACTIVE_FILTER),
                await point.get_user_assignment_ids(player, {"accepted": True}),
                await point.get_user_assignment_ids(player, {"approved": True}),
            )

        open_ids, active_ids, accepted_ids, approved_ids = run_scenario(world, body)
        assert open_ids == [a1]
        assert active_ids == [a1, a2]
        assert accepted_ids == [a3]
        assert approved_ids == [a2, a3]

    def test_combined_flags_union(self, world):
        a1, _, a3, _ = world.ASSIGNMENTS
        world.store.add_submission(SubmissionRecord(
            id="s3", assignment_id=a3, user_id=world.PLAYER,
            approval_state=ApprovalState.APPROVED,
        ))

        async def body(game, point, player):
            point.set_user_assignments(player, [a1, a3])
            return (
                await point.get_user_assignment_ids(player, {"open": True, "accepted": True}),
                await point.get_user_assignment_ids(player, {}),
            )

        assert run_scenario(world, body) == ([a1, a3], [a1, a3])

    def test_filtered_ids_are_subset_in_order(self, world):
        async def body(game, point, player):
            point.set_user_assignments(player, list(reversed(world.ASSIGNMENTS)))
            everything = await point.get_user_assignment_ids(player)
            filtered = await point.get_user_assignment_ids(player, OPEN_FILTER)
            return everything, filtered

        everything, filtered = run_scenario(world, body)
        assert filtered == [a for a in everything if a in filtered]
        assert set(filtered) <= set(everything)

    def test_one_store_query_per_filtered_lookup(self, world):
        async def body(game, point, player):
            point.set_user_assignments(player, world.ASSIGNMENTS)
            world.store.calls.clear()
            await point.get_user_assignment_ids(player, OPEN_FILTER)
            return [c for c in world.store.calls if c[0] == "get_submissions"]

        assert len(run_scenario(world, body)) == 1

    def test_unfiltered_lookup_skips_store(self, world):
        async def body(game, point, player):
            point.set_user_assignments(player, world.ASSIGNMENTS)
            world.store.calls.clear()
            await point.get_user_assignment_ids(player)
            return list(world.store.calls)

        assert run_scenario(world, body) == []


class TestRangeCheck:
    """is_user_in_range() and hysteresis."""

    def walk(self, world, distances):
        """Move the player through ``distances`` (metres from POINT)."""
        async def body(game, point, player):
            states = []
            for meters in distances:
                player.set_location(world.north(meters))
                await point.update_range_state(player)
                states.append(point.is_in_range_memory(player))
            return states

        return run_scenario(world, body)

    def test_without_location_not_in_range(self, world):
        async def body(game, point, player):
            return await point.is_user_in_range(player), await point.is_user_in_range(None)

        assert run_scenario(world, body) == (False, False)

    def test_explicit_range_overrides_policy(self, world):
        async def body(game, point, player):
            player.set_location(world.north(40))
            return (await point.is_user_in_range(player, 50),
                    await point.is_user_in_range(player, 30))

        assert run_scenario(world, body) == (True, False)

    def test_sticky_hysteresis(self, world):
        # enter within 10m, stay until beyond 15m
        assert self.walk(world, [12, 5, 12, 14, 20, 12]) == [
            False, True, True, True, False, False,
        ]

    def test_inverse_hysteresis(self, make_world):
        world = make_world(LiveConfig(range_hysteresis="inverse"))
        # enter within 15m, leave beyond 10m
        assert self.walk(world, [20, 12, 12, 5, 9, 14]) == [
            False, True, False, True, True, False,
        ]

    def test_stale_location_leaves_range(self, world):
        async def body(game, point, player):
            player.set_location(world.BASE)
            await point.update_range_state(player)
            entered = point.is_in_range_memory(player)
            player._location_time -= world.config.location_decay_seconds + 1
            await point.update_range_state(player)
            return entered, point.is_in_range_memory(player)

        assert run_scenario(world, body) == (True, False)


class TestVisibility:
    """is_visible_for()."""

    def test_hidden_without_assignments(self, world):
        async def body(game, point, player):
            return await point.is_visible_for(player)

        assert run_scenario(world, body) is False

    def test_visible_with_open_or_pending_assignment(self, world):
        a1, a2 = world.ASSIGNMENTS[:2]
        world.store.add_submission(SubmissionRecord(
            id="s2", assignment_id=a2, user_id=world.PLAYER,
            approval_state=ApprovalState.PENDING,
        ))

        async def body(game, point, player):
            point.set_user_assignments(player, [a2])
            pending_only = await point.is_visible_for(player)
            point.set_user_assignments(player, [a1])
            open_only = await point.is_visible_for(player)
            return pending_only, open_only

        assert run_scenario(world, body) == (True, True)

    def test_hidden_once_assignments_decided(self, world):
        a1 = world.ASSIGNMENTS[0]
        world.store.add_submission(SubmissionRecord(
            id="s1", assignment_id=a1, user_id=world.PLAYER,
            approval_state=ApprovalState.APPROVED,
        ))

        async def body(game, point, player):
            point.set_user_assignments(player, [a1])
            return await point.is_visible_for(player)

        assert run_scenario(world, body) is False

    def test_visible_to_spectators(self, world):
        async def body(game, point, player):
            spectator = await game.get_user(world.SPECTATOR)
            return await point.is_visible_for(spectator)

        assert run_scenario(world, body) is True

    def test_visible_to_everyone_when_finished(self, world):
        async def body(game, point, player):
            await world.store.set_field(world.GAME, "stage", int(GameStage.FINISHED))
            return await point.is_visible_for(player)

        assert run_scenario(world, body) is True

    def test_visibility_state(self, world):
        async def body(game, point, player):
            point.set_in_range_memory(player, True)
            return await point.get_visibility_state(player)

        assert run_scenario(world, body) == {"inRange": True}


class TestUpdateRangeState:
    """Range transitions and the packets they cause."""

    def test_entering_range_broadcasts_once_and_notifies_mover(self, world):
        a1 = world.ASSIGNMENTS[0]

        async def body(game, point, player):
            point.set_user_assignments(player, [a1])
            player.set_location(world.BASE)
            world.push.clear()
            first = await point.update_range_state(player)
            after_first = list(world.push.sent)
            second = await point.update_range_state(player)
            return first, second, after_first

        first, second, after_first = run_scenario(world, body)
        assert first is True
        assert second is False
        # The unchanged second evaluation sends nothing
        assert world.push.sent == after_first

        point_data = world.push.of_type(PacketType.POINT_DATA)
        assert sorted(entry[2] for entry in point_data) == sorted([world.PLAYER, world.SPECTATOR])
        player_data = [e for e in point_data if e[2] == world.PLAYER][0][1]
        assert player_data == {
            "point": world.POINT,
            "game": world.GAME,
            "data": {"name": "Fountain", "inRange": True},
        }

        changed = world.push.of_type(PacketType.POINT_RANGE_CHANGED)
        assert changed == [(
            int(PacketType.POINT_RANGE_CHANGED),
            {"point": world.POINT, "name": "Fountain", "inRange": True},
            world.PLAYER,
        )]

    def test_leaving_range_notifies_with_in_range_false(self, world):
        async def body(game, point, player):
            point.set_user_assignments(player, world.ASSIGNMENTS[:1])
            player.set_location(world.BASE)
            await point.update_range_state(player)
            world.push.clear()
            player.set_location(world.north(50))
            return await point.update_range_state(player)

        assert run_scenario(world, body) is True
        changed = world.push.of_type(PacketType.POINT_RANGE_CHANGED)
        assert [entry[1]["inRange"] for entry in changed] == [False]

    def test_no_notification_when_point_hidden_from_mover(self, world):
        async def body(game, point, player):
            player.set_location(world.BASE)
            return await point.update_range_state(player)

        assert run_scenario(world, body) is True
        assert world.push.of_type(PacketType.POINT_RANGE_CHANGED) == []

    def test_store_failure_leaves_memory_untouched(self, world):
        async def body(game, point, player):
            player.set_location(world.BASE)
            world.store.fail("get_field:location", world.POINT)
            with pytest.raises(PersistenceError):
                await point.update_range_state(player)
            return point.is_in_range_memory(player)

        assert run_scenario(world, body) is False
        assert world.push.sent == []

    def test_broadcast_failure_is_best_effort(self, world):
        async def body(game, point, player):
            point.set_user_assignments(player, world.ASSIGNMENTS[:1])
            player.set_location(world.BASE)
            world.store.fail("get_field:name", world.POINT)
            changed = await point.update_range_state(player)
            return changed, point.is_in_range_memory(player)

        assert run_scenario(world, body) == (True, True)
        assert world.push.of_type(PacketType.POINT_DATA) == []

    def test_overlapping_updates_are_serialised(self, world):
        async def body(game, point, player):
            point.set_user_assignments(player, world.ASSIGNMENTS[:1])
            player.set_location(world.BASE)
            world.slow_reads()
            world.push.clear()
            first = asyncio.ensure_future(point.update_range_state(player))
            await asyncio.sleep(0)
            # Between the enter and exit radius: stays in range once entered
            player.set_location(world.north(12))
            second = asyncio.ensure_future(point.update_range_state(player))
            results = await asyncio.gather(first, second)
            return results, point.is_in_range_memory(player)

        results, in_range = run_scenario(world, body)
        assert results == [True, False]
        assert in_range is True
        changed = world.push.of_type(PacketType.POINT_RANGE_CHANGED)
        assert [entry[1]["inRange"] for entry in changed] == [True]


class TestSendAndDestroy:
    """send_data(), broadcast_data() and destroy()."""

    def test_send_data_to_connections(self, world):
        async def body(game, point, player):
            await point.send_data(player, connections=["socket-1", "socket-2"])

        run_scenario(world, body)
        targets = [entry[2] for entry in world.push.of_type(PacketType.POINT_DATA)]
        assert targets == ["socket-1", "socket-2"]

    def test_send_data_rejects_foreign_point(self, world):
        async def body(game, point, player):
            await world.store.set_field(world.POINT, "game_id", world.OTHER_GAME)
            await point.send_data(player)

        with pytest.raises(PointNotInGameError):
            run_scenario(world, body)

    def test_broadcast_reaches_visible_users_only(self, world):
        async def body(game, point, player):
            return await point.broadcast_data()

        assert run_scenario(world, body) == 1
        targets = [entry[2] for entry in world.push.of_type(PacketType.POINT_DATA)]
        assert targets == [world.SPECTATOR]

    def test_destroy_deletes_evicts_and_notifies(self, world):
        async def body(game, point, player):
            point.set_user_assignments(player, world.ASSIGNMENTS[:1])
            await point.destroy()
            return (
                game.point_manager.get_loaded_point(world.POINT),
                await game.point_manager.get_point(world.POINT),
                await world.store.is_valid_point_id(world.POINT),
            )

        assert run_scenario(world, body) == (None, None, False)
        destroyed = world.push.of_type(PacketType.POINT_DESTROYED)
        assert sorted(entry[2] for entry in destroyed) == sorted([world.PLAYER, world.SPECTATOR])
        assert destroyed[0][1] == {"point": world.POINT, "game": world.GAME}

    def test_destroy_without_notify(self, world):
        async def body(game, point, player):
            await point.destroy(notify=False)

        run_scenario(world, body)
        assert world.push.of_type(PacketType.POINT_DESTROYED) == []

    def test_destroy_failure_keeps_point_loaded(self, world):
        async def body(game, point, player):
            world.store.fail("delete_point")
            with pytest.raises(PersistenceError):
                await point.destroy()
            return game.point_manager.is_point_loaded(world.POINT)

        assert run_scenario(world, body) is True
        assert world.push.of_type(PacketType.POINT_DESTROYED) == []
