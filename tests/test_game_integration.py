"""Integration tests for the console game."""
import logging

import pytest
from gridgame.core.events import TurnEndedEvent
from gridgame.main import Game, render_text


class TestGameIntegration:
    """Integration tests for the full game loop."""

    def test_game_initializes(self, game):
        """Game should start on player 1's resource phase."""
        assert game.running
        assert game.state.status == "playing"
        assert game.state.current_player == 1
        assert game.state.current_phase == "resource"
        assert game.state.players[1].energy == 110

    def test_game_runs_100_ticks(self, game):
        """Game should run 100 ticks without crashing."""
        for _ in range(100):
            game._tick(Game.SIM_DT)
        assert game.state.status == "playing"
        assert game.turns.time_remaining < 120

    def test_full_turn_cycle(self, game):
        assert game.execute("next") == "Phase: action"
        assert game.execute("next") == "Phase: build"
        assert game.execute("create worker 2 24").startswith("Created worker")
        assert game.state.players[1].energy == 100
        assert game.execute("end") == "Player 2 to move"
        assert game.execute("end") == "Player 1 to move"
        assert game.state.turn_number == 2

    def test_create_outside_build_phase(self, game):
        assert game.execute("create worker 2 24") == "Cannot create unit there"
        assert game.state.units == {}

    def test_move_uses_player_action(self, game):
        game.execute("next")
        game.execute("next")
        game.execute("create worker 2 24")
        unit_id = next(iter(game.state.units))
        game.execute("end")
        game.execute("end")
        game.execute("next")

        assert game.execute(f"move {unit_id} 3 24").startswith("Moved")
        assert game.state.get_unit(unit_id).pos == (3, 24)
        assert game.state.players[1].actions_remaining == 2

    def test_move_outside_action_phase(self, game, spawn):
        unit = spawn(game.state, "scout", 1, 10, 10)
        assert game.execute(f"move {unit.id} 11 10") == "No action available"
        assert unit.pos == (10, 10)

    def test_cannot_command_enemy_units(self, game, spawn):
        enemy = spawn(game.state, "scout", 2, 10, 10)
        game.execute("next")
        assert game.execute(f"move {enemy.id} 11 10") == "No action available"
        assert game.execute(f"gather {enemy.id}") == "Not your unit"

    def test_attack_command(self, game, spawn):
        attacker = spawn(game.state, "infantry", 1, 10, 10)
        target = spawn(game.state, "scout", 2, 11, 10)
        game.execute("next")
        assert game.execute(f"attack {attacker.id} 11 10") == f"#{attacker.id} attacked (11, 10)"
        assert target.health == 28

    def test_gather_command(self, game, spawn):
        worker = spawn(game.state, "worker", 1, 5, 5)
        assert game.execute(f"gather {worker.id}") == "Gathered 5 from node_1"
        assert game.execute(f"gather {worker.id}") == "Unit already gathered this turn"

    def test_unknown_and_bad_commands(self, game):
        assert game.execute("dance") == "Unknown command: dance"
        assert game.execute("move one 2 3") == "Bad arguments for move"
        assert game.execute("move") == "Bad arguments for move"
        assert game.execute("") == ""

    def test_surrender(self, game):
        game.execute("surrender")
        assert game.state.is_ended
        assert game.state.winner == 2

    def test_draw(self, game):
        game.execute("draw")
        assert game.state.is_ended
        assert game.state.winner is None

    def test_quit(self, game):
        game.execute("quit")
        assert not game.running

    def test_timer_expiry_hands_over(self):
        g = Game(time_limit=1)
        g.setup()
        for _ in range(12):
            g._tick(0.1)
        assert g.state.current_player == 2
        g.shutdown()

    def test_long_wait_expires_only_current_turn(self, game, recorder):
        ended = recorder(game.state, TurnEndedEvent)
        game.last_time -= 250
        game.update()
        assert [(e.previous_player, e.next_player) for e in ended] == [(1, 2)]
        assert game.state.current_player == 2
        assert game.state.turn_number == 1
        assert game.turns.time_remaining == 120
        assert game.accumulator == 0.0

    def test_command_after_timeout_is_dropped(self, game):
        game.last_time -= 130
        reply = game.submit("surrender", 1)
        assert reply == "Time ran out for player 1; command ignored"
        assert not game.state.is_ended
        assert game.state.current_player == 2

    def test_submit_runs_command_in_time(self, game):
        assert game.submit("next", 1) == "Phase: action"

    def test_save_and_resume(self, game, tmp_path):
        game.execute("next")
        game.execute("next")
        game.execute("create scout 1 22")
        path = tmp_path / "save.json"
        assert game.execute(f"save {path}") == f"Saved to {path}"

        resumed = Game.from_save(path.read_text())
        assert resumed.state.current_phase == "build"
        assert resumed.state.get_unit_at(1, 22).type == "scout"
        assert resumed.state.players[1].energy == game.state.players[1].energy
        resumed.turns.force_end_turn()
        assert resumed.state.current_player == 2
        resumed.shutdown()

    def test_render_text(self, game):
        text = render_text(game.state, game.resources)
        rows = text.splitlines()
        assert rows[23][1] == "B"
        assert rows[1][23] == "b"
        assert rows[4][4] == "*"
        assert "Turn 1, player 1, phase resource, playing" in text

    def test_verbose_logs_every_event(self, caplog):
        caplog.set_level(logging.INFO, logger="gridgame.events")
        g = Game(verbose=True)
        g.setup()
        messages = [r.getMessage() for r in caplog.records if r.name == "gridgame.events"]
        assert any(m.startswith("[gameStarted]") for m in messages)
        assert any(m.startswith("[turnStarted]") for m in messages)
        g.shutdown()

    def test_quiet_logger_reports_game_end(self, game, caplog):
        caplog.set_level(logging.INFO, logger="gridgame.events")
        game.execute("surrender")
        assert "[GAME] Game over: player 2 wins" in caplog.text
