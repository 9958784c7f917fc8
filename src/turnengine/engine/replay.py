"""ReplayEngine - rebuild a game from its exported log.

The seed, player list and options rebuild version 0; every entry is then
re-applied with its recorded draws substituted for fresh ones. Each entry's
state digest (and any snapshot supplied by the caller) is compared as it goes,
so non-determinism surfaces as a ReplayDivergence at the first bad version.
"""

import logging
from typing import Any, Iterator, Mapping, Optional

from turnengine.config import EngineSettings, settings as default_settings
from turnengine.engine.frozen import state_digest
from turnengine.engine.game_engine import GameEngine
from turnengine.engine.listener import EngineListener
from turnengine.errors import ReplayDivergence
from turnengine.models.game import GameDefinition
from turnengine.models.log import ReplayLog
from turnengine.models.results import Snapshot
from turnengine.validation.log import validate_log

logger = logging.getLogger(__name__)


class ReplayEngine:
    """Re-runs exported logs against a game definition."""

    def __init__(
        self,
        definition: GameDefinition,
        settings: Optional[EngineSettings] = None,
        listener: Optional[EngineListener] = None,
    ):
        self._definition = definition
        self._settings = settings or default_settings
        self._listener = listener

    def replay(
        self,
        log: ReplayLog,
        snapshots: Optional[Mapping[int, Any]] = None,
        upto: Optional[int] = None,
    ) -> GameEngine:
        """Rebuild the engine described by ``log``.

        Args:
            log: An exported replay log.
            snapshots: Optional ``version -> state`` (or Snapshot) expected
                values, checked when that version is reached.
            upto: Stop after this version instead of the last entry.

        Returns:
            A live GameEngine positioned at the final replayed version; play
            may continue on it.

        Raises:
            ReplayDivergence: The log is malformed, or the rebuilt state
                differs from what was recorded.
        """
        engine = None
        for engine in self._run(log, snapshots, upto):
            pass
        return engine

    def states(self, log: ReplayLog) -> Iterator[tuple[int, Any]]:
        """Yield ``(version, canonical state)`` for every version of ``log``."""
        for engine in self._run(log, None, None):
            yield engine.version, engine.state

    def state_at(self, log: ReplayLog, version: int) -> Any:
        return self.replay(log, upto=version).state

    def verify(self, log: ReplayLog, snapshots: Optional[Mapping[int, Any]] = None) -> bool:
        """True when the whole log replays cleanly; raises on divergence."""
        self.replay(log, snapshots)
        return True

    def _run(
        self,
        log: ReplayLog,
        snapshots: Optional[Mapping[int, Any]],
        upto: Optional[int],
    ) -> Iterator[GameEngine]:
        result = validate_log(log, self._definition)
        if not result.is_valid:
            details = "; ".join(f"{v.rule_id}: {v.message}" for v in result.errors)
            raise ReplayDivergence(f"log failed validation: {details}")

        engine = GameEngine(
            self._definition,
            log.players,
            log.seed,
            options=log.options,
            settings=self._settings,
            listener=self._listener,
        )
        verify = self._settings.verify_digests
        if verify and log.initial_digest and engine.initial_digest != log.initial_digest:
            raise ReplayDivergence(
                "initial state does not match the recorded digest",
                sequence=0,
                expected=log.initial_digest,
                actual=engine.initial_digest,
            )
        self._check_snapshot(engine, snapshots)
        yield engine

        last = log.final_version if upto is None else min(upto, log.final_version)
        for entry in log.entries[:last]:
            engine.apply_entry(entry, verify_digest=verify)
            self._check_snapshot(engine, snapshots)
            yield engine

        logger.debug("replayed %d of %d entries of %s", last, log.final_version, log.game)

    @staticmethod
    def _check_snapshot(engine: GameEngine, snapshots: Optional[Mapping[int, Any]]) -> None:
        if not snapshots or engine.version not in snapshots:
            return
        expected = snapshots[engine.version]
        if isinstance(expected, Snapshot):
            expected = expected.state
        expected_digest = state_digest(expected)
        actual_digest = state_digest(engine.state)
        if expected_digest != actual_digest:
            logger.error("snapshot mismatch at v%d", engine.version)
            raise ReplayDivergence(
                f"state at version {engine.version} differs from the recorded snapshot",
                sequence=engine.version,
                expected=expected_digest,
                actual=actual_digest,
            )
