"""Tests for the masking projector and declarative masks."""

import random

import pytest

from turnengine.engine.frozen import FrozenDict, freeze
from turnengine.engine.masking import HIDDEN, DeclarativeMask, HiddenField, MaskingProjector, identity_mask

STATE = freeze({
    "players": {
        "p1": {"hand": ["A", "B"], "score": 3},
        "p2": {"hand": ["C", "D"], "score": 1},
    },
    "deck": ["E", "F", "G"],
    "discard": ["H"],
})

HANDS = DeclarativeMask([
    HiddenField(path=("players", "*", "hand")),
    HiddenField(path=("deck",), visible_to=lambda player_id, bound: False),
])


def collect_strings(value) -> set:
    if isinstance(value, dict):
        return set().union(*(collect_strings(v) for v in value.values())) if value else set()
    if isinstance(value, list):
        return set().union(*(collect_strings(v) for v in value)) if value else set()
    return {value} if isinstance(value, str) else set()


class TestDeclarativeMask:
    """Tests for HiddenField rules."""

    def test_owner_sees_own_hand(self):
        view = MaskingProjector(HANDS).view(STATE, "p1")
        assert view["players"]["p1"]["hand"] == ["A", "B"]

    def test_other_hands_keep_length(self):
        view = MaskingProjector(HANDS).view(STATE, "p1")
        assert view["players"]["p2"]["hand"] == [HIDDEN, HIDDEN]
        assert view["players"]["p2"]["score"] == 1

    def test_nobody_sees_deck(self):
        for player in ("p1", "p2"):
            view = MaskingProjector(HANDS).view(STATE, player)
            assert view["deck"] == [HIDDEN] * 3
        assert MaskingProjector(HANDS).view(STATE, "p1")["discard"] == ["H"]

    def test_keep_length_false_hides_size(self):
        mask = DeclarativeMask([HiddenField(path=("players", "*", "hand"), keep_length=False, placeholder=None)])
        view = MaskingProjector(mask).view(STATE, "p1")
        assert view["players"]["p2"]["hand"] is None

    def test_hidden_dict_keeps_keys(self):
        mask = DeclarativeMask([HiddenField(path=("players", "*"))])
        view = MaskingProjector(mask).view(STATE, "p1")
        assert set(view["players"]["p2"]) == {"hand", "score"}
        assert view["players"]["p2"]["score"] == HIDDEN
        assert view["players"]["p1"] == STATE["players"]["p1"]

    def test_list_index_wildcard(self):
        state = freeze({"seats": [{"owner": "p1", "secret": 1}, {"owner": "p2", "secret": 2}]})
        mask = DeclarativeMask([HiddenField(
            path=("seats", "*", "secret"),
            visible_to=lambda player_id, bound: state["seats"][bound[0]]["owner"] == player_id,
        )])
        view = MaskingProjector(mask).view(state, "p2")
        assert view["seats"][0]["secret"] == HIDDEN
        assert view["seats"][1]["secret"] == 2

    def test_absent_paths_are_skipped(self):
        view = MaskingProjector(HANDS).view(freeze({"lobby": True}), "p1")
        assert view == {"lobby": True}


class TestMaskingProjector:
    """Tests for MaskingProjector."""

    def test_identity_by_default(self):
        view = MaskingProjector().view(STATE, "p1")
        assert view == STATE
        assert identity_mask(STATE, "p1") is STATE

    def test_view_is_frozen_and_shares_nothing(self):
        view = MaskingProjector().view(STATE, "p1")
        assert isinstance(view, FrozenDict)
        assert view["players"] is not STATE["players"]

    def test_mask_cannot_touch_canonical_state(self):
        def nosy(state, player_id):
            state["players"].clear()

        MaskingProjector(nosy).view(STATE, "p1")
        assert set(STATE["players"]) == {"p1", "p2"}

    def test_cache_by_version_and_player(self):
        calls = []

        def counting(state, player_id):
            calls.append(player_id)
            return state

        projector = MaskingProjector(counting, cache_size=2)
        first = projector.view(STATE, "p1", version=1)
        assert projector.view(STATE, "p1", version=1) is first
        projector.view(STATE, "p2", version=1)
        projector.view(STATE, "p1", version=2)
        assert projector.cached == 2
        projector.view(STATE, "p2", version=1)
        assert calls == ["p1", "p2", "p1"]
        # Least recently used entry (p1 at version 1) was evicted
        projector.view(STATE, "p1", version=1)
        assert calls == ["p1", "p2", "p1", "p1"]

    def test_no_caching_without_version(self):
        projector = MaskingProjector()
        projector.view(STATE, "p1")
        assert projector.cached == 0


class TestNonLeakage:
    """A player never sees another player's hidden cards."""

    @pytest.mark.parametrize("seed", range(25))
    def test_random_deals(self, seed):
        rng = random.Random(seed)
        cards = [f"card{i}" for i in range(30)]
        rng.shuffle(cards)
        players = [f"p{i}" for i in range(rng.randint(2, 5))]
        state = {"players": {}, "deck": [], "discard": []}
        for player in players:
            size = rng.randint(0, 4)
            state["players"][player] = {"hand": [cards.pop() for _ in range(size)]}
        state["deck"] = cards[:rng.randint(0, 10)]
        state = freeze(state)

        projector = MaskingProjector(HANDS)
        for viewer in players:
            view = projector.view(state, viewer)
            visible = collect_strings(view)
            for other in players:
                hand = state["players"][other]["hand"]
                assert len(view["players"][other]["hand"]) == len(hand)
                if other != viewer:
                    assert not visible & set(hand)
            assert not visible & set(state["deck"])
