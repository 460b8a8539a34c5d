"""
Tests for the live session: timers, auto-play, connectivity and teardown.
"""

import random

import pytest

from cinco_vidas_engine.bots.base import BotAction
from cinco_vidas_engine.constants import (
    PHASE_GAME_OVER, PHASE_LOBBY, PHASE_PLAYING, PHASE_PREDICTING, PHASE_SCORING,
    ROOM_CODE_CHARS,
)
from cinco_vidas_engine.errors import (
    ACTION_NOT_ALLOWED, GAME_IN_PROGRESS, NOT_HOST, ROOM_NOT_FOUND,
    SESSION_CLOSED, WRONG_PHASE, GameError,
)
from cinco_vidas_engine.rules import RuleConfig
from cinco_vidas_engine.sessions import SessionManager, generate_room_code


def test_first_human_is_host(make_session):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")
    assert session.state.host().id == "a"


def test_add_bot_host_only(make_session):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")

    assert session.add_bot("b").error_code == NOT_HOST

    assert session.add_bot("a").success
    bot = session.state.players[-1]
    assert bot.is_bot
    assert bot.difficulty == "medium"

    session.add_bot("a", "hard")
    assert session.state.players[-1].difficulty == "hard"


def test_start_game_checks(make_session):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")

    assert session.start_game("b").error_code == NOT_HOST
    assert session.start_game("a").success
    assert session.start_game("a").error_code == GAME_IN_PROGRESS


def test_solo_start_adds_bot_opponent(make_session, scheduler):
    session = make_session()
    session.join("h", "Ana")

    result = session.start_game("h")
    assert result.success
    state = session.state
    assert len(state.players) == 2
    assert state.players[1].is_bot
    assert state.phase == PHASE_PREDICTING
    assert state.active_player_index == 1

    # The bot thinks, then the turn comes back to the human
    scheduler.advance(1.5)
    assert session.state.players[1].has_predicted
    assert session.state.active_player_index == 0
    assert session.state.turn_timer == 15


def test_turn_timer_ticks_without_versioning(make_session, scheduler):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")
    session.start_game("a")
    version = session.state.version

    scheduler.advance(3)
    assert session.state.turn_timer == 12
    assert session.state.version == version


def test_timeout_auto_plays_for_idle_human(make_session, scheduler):
    session = make_session()
    session.join("h", "Ana")
    session.start_game("h")
    scheduler.advance(1.5)
    assert session.state.active_player_index == 0

    scheduler.advance(14)
    assert session.state.turn_timer == 1
    assert not session.state.players[0].has_predicted

    scheduler.advance(1)
    assert session.state.players[0].has_predicted
    assert session.state.phase == PHASE_PLAYING


def test_roster_change_keeps_countdown(make_session, scheduler):
    session = make_session()
    for pid in ("a", "b", "c"):
        session.join(pid, pid.upper())
    session.start_game("a")
    scheduler.advance(5)
    assert session.state.turn_timer == 10

    session.disconnect("c")
    assert session.state.turn_timer == 10


def test_subscribers_get_snapshots(make_session):
    session = make_session()
    seen = []
    unsubscribe = session.subscribe(lambda s, state: seen.append(state.version))

    session.join("a", "Ana")
    assert seen == [session.state.version]

    unsubscribe()
    session.join("b", "Beto")
    assert len(seen) == 1


def test_snapshot_hides_other_hands(make_session):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")
    session.start_game("a")

    view = session.snapshot("a")
    players = {p["id"]: p for p in view["players"]}
    assert len(players["a"]["hand"]) == 5
    assert "hand" not in players["b"]
    assert players["b"]["hand_size"] == 5


def test_host_migrates_on_disconnect_and_is_not_returned(make_session):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")
    published = []
    session.subscribe(lambda s, state: published.append(state))

    session.disconnect("a")
    assert len(published) == 1
    state = published[0]
    assert not state.get_player("a").is_connected
    assert state.host().id == "b"
    assert session.timers.pending("grace:a")

    assert session.reconnect("a").success
    assert session.state.get_player("a").is_connected
    assert session.state.host().id == "b"
    assert not session.timers.pending("grace:a")


def test_grace_expiry_in_lobby_removes_seat(make_session, scheduler):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")

    session.disconnect("b")
    scheduler.advance(29)
    assert session.state.get_player("b") is not None

    scheduler.advance(1)
    assert [p.id for p in session.state.players] == ["a"]


def test_disconnected_turn_holder_acts_immediately(make_session):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")
    session.start_game("a")
    assert session.state.active_player_index == 1

    session.disconnect("b")
    assert session.state.players[1].has_predicted
    assert session.state.active_player_index == 0


def test_grace_expiry_in_match_forfeits(make_session, scheduler):
    session = make_session()
    session.join("a", "Ana")
    session.join("b", "Beto")
    session.start_game("a")

    session.disconnect("b")
    scheduler.advance(30)
    state = session.state
    assert state.get_player("b").is_eliminated
    assert state.phase == PHASE_GAME_OVER
    assert state.winner_id == "a"

    result = session.reconnect("b")
    assert result.error_code == ACTION_NOT_ALLOWED


def test_grace_expiry_without_forfeit_keeps_seat(make_session, scheduler):
    session = make_session(RuleConfig(forfeit_abandoned_seats=False, starting_lives=20))
    session.join("a", "Ana")
    session.join("b", "Beto")
    session.start_game("a")

    session.disconnect("b")
    scheduler.advance(30)
    player = session.state.get_player("b")
    assert not player.is_eliminated
    assert not player.is_connected
    assert session.state.phase != PHASE_GAME_OVER


def test_leave_in_lobby_and_match(make_session):
    session = make_session()
    for pid in ("a", "b", "c", "d"):
        session.join(pid, pid.upper())

    assert session.leave("d").success
    assert session.state.get_player("d") is None

    session.start_game("a")
    assert session.leave("a").success
    state = session.state
    assert state.get_player("a").is_eliminated
    assert state.host().id == "b"
    assert state.phase == PHASE_PREDICTING


def test_continue_round(make_session, scheduler):
    session = make_session(RuleConfig(auto_advance_rounds=False, starting_lives=20))
    session.join("h", "Ana")
    session.start_game("h")
    assert session.continue_round("h").error_code == WRONG_PHASE

    assert scheduler.run_until(lambda: session.state.round_scored)
    assert session.state.phase == PHASE_SCORING
    scheduler.advance(60)
    assert session.state.phase == PHASE_SCORING

    assert session.continue_round("h").success
    assert session.state.current_round == 2
    assert session.state.cards_this_round == 4


def test_rounds_advance_on_their_own(make_session, scheduler):
    session = make_session(RuleConfig(starting_lives=20))
    session.join("h", "Ana")
    session.start_game("h")

    assert scheduler.run_until(lambda: session.state.current_round == 2)
    assert session.state.phase == PHASE_PREDICTING


def test_match_runs_to_completion(make_session, scheduler):
    session = make_session(RuleConfig(starting_lives=2))
    session.join("h", "Ana")
    session.add_bot("h", "easy")
    session.add_bot("h", "hard")
    session.start_game("h")

    assert scheduler.run_until(lambda: session.state.phase == PHASE_GAME_OVER)
    state = session.state
    assert state.active_count() <= 1
    assert state.winner_id in (None, *[p.id for p in state.active_players()])
    assert len(session.timers) == 0
    assert scheduler.live() == []


def test_structural_failure_ends_match(make_session, scheduler, monkeypatch):
    monkeypatch.setattr(
        "cinco_vidas_engine.session.choose_action",
        lambda *args, **kwargs: BotAction.play(99)
    )
    session = make_session()
    session.join("h", "Ana")
    session.start_game("h")

    scheduler.advance(1.5)
    state = session.state
    assert state.phase == PHASE_GAME_OVER
    assert state.winner_id is None
    assert state.failure == "internal_error"
    assert len(session.timers) == 0


def test_close_cancels_everything(make_session, scheduler):
    session = make_session()
    session.join("h", "Ana")
    session.start_game("h")
    session.disconnect("h")

    session.close()
    assert len(session.timers) == 0
    version = session.state.version
    scheduler.advance(120)
    assert session.state.version == version
    assert session.join("x", "Late").error_code == SESSION_CLOSED


# Session registry

def test_room_codes():
    code = generate_room_code(rng=random.Random(1))
    assert len(code) == 4
    assert all(ch in ROOM_CODE_CHARS for ch in code)
    assert "I" not in ROOM_CODE_CHARS and "O" not in ROOM_CODE_CHARS


def test_room_code_collisions_give_up():
    class Stuck:
        def choice(self, seq):
            return seq[0]

    with pytest.raises(GameError):
        generate_room_code({"AAAA"}, Stuck())


def test_session_manager(scheduler):
    manager = SessionManager(scheduler_factory=lambda: scheduler, rng=random.Random(4))
    first = manager.create_session()
    second = manager.create_session(RuleConfig(max_players=4))
    assert first.code != second.code
    assert len(manager) == 2
    assert second.rules.max_players == 4

    assert manager.get_session(first.code.lower()) is first
    assert manager.get_session(None) is None
    with pytest.raises(GameError) as exc:
        manager.require_session("NOPE1")
    assert exc.value.code == ROOM_NOT_FOUND

    manager.close_session(first.code)
    assert first.closed
    assert manager.get_session(first.code) is None

    manager.close_all()
    assert len(manager) == 0
    assert second.closed
    assert second.state.phase == PHASE_LOBBY


def test_manager_closes_emptied_lobby(scheduler):
    manager = SessionManager(scheduler_factory=lambda: scheduler, rng=random.Random(4))
    session = manager.create_session()
    session.join("p0", "Ana")
    session.disconnect("p0")
    assert len(manager) == 1

    scheduler.advance(31)
    assert session.closed
    assert len(manager) == 0
    assert scheduler.live() == []


def test_manager_closes_lobby_left_to_bots(scheduler):
    manager = SessionManager(scheduler_factory=lambda: scheduler, rng=random.Random(4))
    session = manager.create_session()
    session.join("a", "Ana")
    session.add_bot("a")
    session.leave("a")
    assert session.closed
    assert manager.get_session(session.code) is None


def test_manager_closes_finished_match_once_humans_are_gone(scheduler):
    manager = SessionManager(scheduler_factory=lambda: scheduler, rng=random.Random(4))
    session = manager.create_session()
    session.join("a", "Ana")
    session.join("b", "Beto")
    session.start_game("a")
    session.surrender("a")
    assert session.state.phase == PHASE_GAME_OVER

    session.disconnect("a")
    assert not session.closed
    session.disconnect("b")
    assert session.closed
    assert len(manager) == 0


def test_manager_keeps_match_running_without_humans(scheduler):
    manager = SessionManager(scheduler_factory=lambda: scheduler, rng=random.Random(4))
    session = manager.create_session(RuleConfig(forfeit_abandoned_seats=False))
    session.join("a", "Ana")
    session.join("b", "Beto")
    session.start_game("a")
    session.disconnect("a")
    session.disconnect("b")
    assert not session.closed

    assert scheduler.run_until(lambda: session.closed)
    assert len(manager) == 0
