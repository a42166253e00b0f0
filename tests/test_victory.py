"""Test victory conditions, surrender and draws."""
import pytest
from gridgame.core.events import (
    DrawDeclaredEvent,
    GameEndedEvent,
    PlayerSurrenderedEvent,
    VictoryCheckEvent,
)


class TestVictoryCheck:
    """Tests for check_victory_condition."""

    def test_no_winner_at_start(self, playing_state, recorder):
        checks = recorder(playing_state, VictoryCheckEvent)
        assert not playing_state.check_victory_condition()
        assert playing_state.status == "playing"
        assert checks[0].player1_base_health == 200
        assert checks[0].player2_base_health == 200
        assert checks[0].turn_number == 1

    def test_resource_victory(self, playing_state):
        playing_state.players[2].resources_gathered = 500
        assert playing_state.check_victory_condition()
        assert playing_state.winner == 2

    def test_resource_victory_goes_to_lower_id_first(self, playing_state):
        playing_state.players[1].resources_gathered = 600
        playing_state.players[2].resources_gathered = 700
        playing_state.check_victory_condition()
        assert playing_state.winner == 1

    def test_both_bases_gone_is_draw(self, playing_state):
        for base in playing_state.bases.values():
            base.take_damage(base.health)
        assert playing_state.check_victory_condition()
        assert playing_state.winner is None

    def test_no_elimination_before_turn_six(self, playing_state, spawn):
        spawn(playing_state, "worker", 1, 10, 10)
        playing_state.turn_number = 5
        assert not playing_state.check_victory_condition()

    def test_elimination_after_turn_five(self, playing_state, spawn):
        spawn(playing_state, "worker", 1, 10, 10)
        playing_state.turn_number = 6
        assert playing_state.check_victory_condition()
        assert playing_state.winner == 1

    def test_both_eliminated_is_draw(self, playing_state):
        playing_state.turn_number = 6
        assert playing_state.check_victory_condition()
        assert playing_state.winner is None

    def test_killing_sole_unit_wins(self, playing_state, spawn):
        attacker = spawn(playing_state, "scout", 1, 10, 10)
        target = spawn(playing_state, "scout", 2, 11, 11)
        playing_state.turn_number = 6

        assert playing_state.attack_unit(attacker.id, 11, 11)
        assert target.health == 29
        target.health = 1
        assert playing_state.attack_unit(attacker.id, 11, 11)
        assert target.id not in playing_state.units
        assert playing_state.is_ended
        assert playing_state.winner == 1

    def test_no_check_after_end(self, playing_state, recorder):
        playing_state.end_game(1)
        checks = recorder(playing_state, VictoryCheckEvent)
        assert not playing_state.check_victory_condition()
        assert checks == []


class TestEndGame:
    """Tests for end_game, surrender and draw."""

    def test_end_game_once(self, playing_state, recorder):
        ended = recorder(playing_state, GameEndedEvent)
        assert playing_state.end_game(2)
        assert not playing_state.end_game(1)
        assert playing_state.winner == 2
        assert len(ended) == 1

    def test_surrender(self, playing_state, recorder):
        events = recorder(playing_state, PlayerSurrenderedEvent, GameEndedEvent)
        assert playing_state.player_surrender(1)
        assert playing_state.winner == 2
        assert [e.name for e in events] == ["playerSurrendered", "gameEnded"]
        assert events[0].surrendered_player == 1
        assert not playing_state.player_surrender(2)

    def test_surrender_unknown_player(self, playing_state):
        assert not playing_state.player_surrender(7)
        assert playing_state.status == "playing"

    def test_declare_draw(self, playing_state, recorder):
        events = recorder(playing_state, DrawDeclaredEvent, GameEndedEvent)
        assert playing_state.declare_draw()
        assert playing_state.winner is None
        assert [e.name for e in events] == ["drawDeclared", "gameEnded"]
        assert not playing_state.declare_draw()
