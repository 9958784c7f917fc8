"""Tests for definition and log validators."""

import pytest

from turnengine.errors import DefinitionError
from turnengine.models.action import ActionDefinition
from turnengine.models.game import GameBuilder, GameDefinition
from turnengine.models.log import ActionLogEntry, EntryKind, ReplayLog
from turnengine.models.phase import PhaseDefinition
from turnengine.validation import ValidationSeverity, validate_definition, validate_log


def noop(ctx, payload):
    return None


def initial(players, options):
    return {}


def definition(**overrides) -> GameDefinition:
    fields = {
        "name": "test",
        "root_phase": "main",
        "initial_state": initial,
        "actions": {"act": ActionDefinition(name="act", reducer=noop)},
        "phases": {"main": PhaseDefinition(name="main", allowed_actions=frozenset({"act"}))},
    }
    fields.update(overrides)
    return GameDefinition(**fields)


def rule_ids(result) -> list[str]:
    return [v.rule_id for v in result.violations]


def entry(sequence: int, **kwargs) -> ActionLogEntry:
    fields = {"action_name": "act", "acting_player_id": "p1"}
    fields.update(kwargs)
    return ActionLogEntry(sequence=sequence, **fields)


class TestValidateDefinition:
    """Rules D.1-D.7."""

    def test_valid_definition(self):
        result = validate_definition(definition())
        assert result.is_valid
        assert result.violations == []

    def test_duplicates_reported(self):
        result = validate_definition(definition(), duplicates=["action:act"])
        assert rule_ids(result) == ["D.1"]
        assert not result

    def test_missing_root_phase(self):
        assert "D.2" in rule_ids(validate_definition(definition(root_phase="lobby")))

    def test_unknown_allowed_action(self):
        phases = {"main": PhaseDefinition(name="main", allowed_actions=frozenset({"act", "fly"}))}
        result = validate_definition(definition(phases=phases))
        assert rule_ids(result) == ["D.3"]
        assert result.violations[0].context == {"phase": "main", "action": "fly"}

    def test_unknown_next_phase(self):
        phases = {"main": PhaseDefinition(name="main", allowed_actions=frozenset({"act"}), next_phase="end")}
        assert rule_ids(validate_definition(definition(phases=phases))) == ["D.4"]

    def test_player_bounds(self):
        assert rule_ids(validate_definition(definition(min_players=3, max_players=2))) == ["D.5"]
        assert rule_ids(validate_definition(definition(min_players=0))) == ["D.5"]

    def test_self_loop_is_warning(self):
        phases = {"main": PhaseDefinition(name="main", allowed_actions=frozenset({"act"}), next_phase="main")}
        result = validate_definition(definition(phases=phases))
        assert rule_ids(result) == ["D.6"]
        assert result.violations[0].severity == ValidationSeverity.WARNING
        assert result.is_valid

    def test_unused_action_is_warning(self):
        actions = {
            "act": ActionDefinition(name="act", reducer=noop),
            "idle": ActionDefinition(name="idle", reducer=noop),
        }
        result = validate_definition(definition(actions=actions))
        assert rule_ids(result) == ["D.7"]
        assert result.is_valid
        assert result.errors == []


class TestGameBuilder:
    """build() validates before returning."""

    def test_build_raises_on_errors(self):
        game = GameBuilder("test", root_phase="lobby", initial_state=initial)
        game.phase("main", allowed_actions={"ghost"})
        with pytest.raises(DefinitionError) as exc_info:
            game.build()
        assert {v.rule_id for v in exc_info.value.violations} == {"D.2", "D.3"}
        assert "D.2" in str(exc_info.value)

    def test_duplicate_phase(self):
        game = GameBuilder("test", root_phase="main", initial_state=initial)
        game.phase("main")
        game.phase("main")
        with pytest.raises(DefinitionError, match="D.1"):
            game.build()

    def test_decorator_registers_reducer(self):
        game = GameBuilder("test", root_phase="main", initial_state=initial)

        @game.action("act")
        def act(ctx, payload):
            """Do the thing."""

        game.phase("main", allowed_actions={"act"})
        built = game.build()
        assert built.get_action("act").reducer is act
        assert built.get_action("act").description == "Do the thing."
        assert built.get_action("missing") is None
        with pytest.raises(KeyError):
            built.get_phase("missing")


class TestValidateLog:
    """Rules L.1-L.7."""

    def log(self, entries, **kwargs) -> ReplayLog:
        return ReplayLog(game="test", seed=1, players=["p1", "p2"], entries=entries, **kwargs)

    def test_valid_log(self):
        result = validate_log(self.log([entry(1), entry(2, client_action_id="a")]), definition())
        assert result.is_valid
        assert result.violations == []

    def test_sequence_gap(self):
        assert rule_ids(validate_log(self.log([entry(1), entry(3)]))) == ["L.1"]

    def test_duplicate_token(self):
        entries = [entry(1, client_action_id="x"), entry(2, client_action_id="x")]
        assert rule_ids(validate_log(self.log(entries))) == ["L.2"]

    def test_same_token_different_players(self):
        entries = [entry(1, client_action_id="x"), entry(2, client_action_id="x", acting_player_id="p2")]
        assert validate_log(self.log(entries)).is_valid

    def test_action_entry_needs_name_and_player(self):
        assert rule_ids(validate_log(self.log([entry(1, action_name=None)]))) == ["L.3"]

    def test_forced_entries_need_no_player(self):
        forced = ActionLogEntry(sequence=1, kind=EntryKind.FORCE_END_PHASE, reason="timeout")
        assert validate_log(self.log([forced])).is_valid

    def test_unknown_action(self):
        result = validate_log(self.log([entry(1, action_name="fly")]), definition())
        assert rule_ids(result) == ["L.4"]

    def test_other_game(self):
        log = ReplayLog(game="other", seed=1, players=["p1"])
        assert rule_ids(validate_log(log, definition())) == ["L.5"]

    def test_version_mismatch_is_warning(self):
        result = validate_log(self.log([], game_version="2"), definition())
        assert rule_ids(result) == ["L.5"]
        assert result.is_valid

    def test_entries_after_terminate(self):
        entries = [ActionLogEntry(sequence=1, kind=EntryKind.TERMINATE, reason="done"), entry(2)]
        assert rule_ids(validate_log(self.log(entries))) == ["L.6"]

    def test_draw_out_of_range(self):
        assert rule_ids(validate_log(self.log([entry(1, draws=[0.2, 1.5])]))) == ["L.7"]

    def test_results_merge(self):
        merged = validate_log(self.log([entry(2)])) + validate_definition(definition(root_phase="x"))
        assert not merged
        assert rule_ids(merged) == ["L.1", "D.2"]


class TestValidationResult:
    """Violations carry enough to locate the problem."""

    def test_log_violations_name_the_entry(self):
        log = ReplayLog(game="test", seed=1, players=["p1"], entries=[entry(1), entry(3)])
        violation = validate_log(log).violations[0]
        assert violation.sequence == 3
        assert str(violation) == "[ERROR] L.1 (entry 3): expected sequence 2, found 3"

    def test_definition_violations_have_no_entry(self):
        violation = validate_definition(definition(root_phase="x")).violations[0]
        assert violation.sequence is None
        assert str(violation).startswith("[ERROR] D.2: ")

    def test_errors_and_warnings_split(self):
        phases = {"main": PhaseDefinition(name="main", allowed_actions=frozenset({"act"}), next_phase="main")}
        result = validate_definition(definition(phases=phases, min_players=0))
        assert result.rule_ids == ["D.6", "D.5"]
        assert [v.rule_id for v in result.errors] == ["D.5"]
        assert [v.rule_id for v in result.warnings] == ["D.6"]
        assert not result.is_valid
