"""GameEngine - one authoritative game instance.

Per submission:
    payload -> schema validation -> authorization (top frame) -> reducer
    (draws recorded) -> phase stack settles -> log append -> listener hooks

Routine rejections come back as a SubmitResult with status REJECTED and leave
canonical state, the RNG stream and the log untouched. ReducerFault is raised
to the caller after the RNG has been rewound, so the instance stays usable.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from turnengine.config import EngineSettings, settings as default_settings
from turnengine.engine.authorization import check_authorized
from turnengine.engine.context import ActionContext
from turnengine.engine.frozen import freeze, state_digest
from turnengine.engine.listener import EngineListener, create_listener
from turnengine.engine.masking import MaskingProjector
from turnengine.engine.patch import apply_patch, diff
from turnengine.engine.phase_stack import PhaseStackMachine, PhaseTransition, TransitionKind
from turnengine.engine.reducer import ReducerExecutor
from turnengine.engine.rng import DeterministicRng, Draws, ForbiddenDraws, LiveDraws, ReplayDraws
from turnengine.engine.schema import payload_to_log, validate_payload
from turnengine.errors import (
    ActionRejected,
    DuplicateAction,
    GameTerminated,
    ReducerFault,
    ReplayDivergence,
    Unauthorized,
    UnknownAction,
)
from turnengine.models.action import ActionSubmission
from turnengine.models.game import GameDefinition
from turnengine.models.log import ActionLogEntry, EntryKind, ReplayLog
from turnengine.models.patch import PatchOp
from turnengine.models.phase import PhaseStack
from turnengine.models.results import PatchStreamItem, Snapshot, SubmitResult, SubmitStatus

logger = logging.getLogger(__name__)


class GameEngine:
    """Authoritative state-transition engine for a single game instance.

    Not thread-safe: the caller serializes submissions. Reads (state, views,
    snapshots) only ever see frozen committed values.

    Usage:
        engine = GameEngine(definition, ["p1", "p2"], seed=42)
        result = engine.act("p1", "playCard", {"card": "A"}, client_action_id="c1")
        view = engine.view("p2")
    """

    def __init__(
        self,
        definition: GameDefinition,
        players: Sequence[str],
        seed: int,
        options: Optional[Mapping[str, Any]] = None,
        settings: Optional[EngineSettings] = None,
        listener: Optional[EngineListener] = None,
    ):
        """Build version 0 and enter the root phase.

        Raises:
            ValueError: Player list is empty, repeats an id, or is outside the
                definition's player bounds.
            ReducerFault: The initial-state constructor (or a root phase
                predicate) failed.
        """
        players = list(players)
        if len(set(players)) != len(players):
            raise ValueError(f"duplicate player ids in {players}")
        if len(players) < max(definition.min_players, 1):
            raise ValueError(f"{definition.name} needs at least {definition.min_players} player(s)")
        if definition.max_players is not None and len(players) > definition.max_players:
            raise ValueError(f"{definition.name} allows at most {definition.max_players} player(s)")

        self._definition = definition
        self._players = players
        self._seed = seed
        self._options = dict(options or {})
        self._settings = settings or default_settings
        self._listener: EngineListener = listener or create_listener()

        self._rng = DeterministicRng(seed)
        self._executor = ReducerExecutor(definition.state_model)
        self._machine = PhaseStackMachine(
            definition, players, max_transitions=self._settings.max_phase_transitions
        )
        self._projector = MaskingProjector(definition.mask, self._settings.mask_cache_size)

        try:
            initial = freeze(definition.initial_state(list(players), dict(self._options)))
            if definition.state_model is not None:
                definition.state_model.model_validate(initial)
        except Exception as exc:
            raise ReducerFault(f"initial state for {definition.name!r} failed: {exc}") from exc

        self._initial_state = initial
        self._state = initial
        self._version = 0
        self._states: list[Any] = [initial] if self._settings.keep_history else []
        self._patches: list[list[PatchOp]] = []
        self._entries: list[ActionLogEntry] = []
        self._tokens: dict[tuple[str, str], ActionLogEntry] = {}
        self._initial_digest = state_digest(initial)

        stack, transitions = self._machine.start(initial, 0)
        self._machine.commit(stack)
        logger.info("started %s with %s (seed=%s): %s", definition.name, players, seed, stack.describe())
        self._listener.on_game_start(initial, self._machine.stack)
        self._notify_transitions(transitions)
        if stack.terminated:
            self._listener.on_game_over(stack.terminal_reason, initial, self.export_log())

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def definition(self) -> GameDefinition:
        return self._definition

    @property
    def players(self) -> list[str]:
        return list(self._players)

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def state(self) -> Any:
        """Frozen canonical state at the current version."""
        return self._state

    @property
    def version(self) -> int:
        """Number of committed log entries."""
        return self._version

    @property
    def initial_digest(self) -> str:
        return self._initial_digest

    @property
    def phases(self) -> PhaseStack:
        return self._machine.stack

    @property
    def current_phase(self) -> Optional[str]:
        return self._machine.current_phase

    @property
    def active_player(self) -> Optional[str]:
        return self._machine.active_player

    @property
    def terminated(self) -> bool:
        return self._machine.terminated

    @property
    def terminal_reason(self) -> Optional[str]:
        return self._machine.stack.terminal_reason

    @property
    def history(self) -> list[ActionLogEntry]:
        return list(self._entries)

    def players_to_act(self) -> list[str]:
        return self._machine.players_to_act()

    def legal_actions(self, player_id: str) -> list[str]:
        return self._machine.legal_actions(player_id)

    def state_at(self, version: int) -> Any:
        """Canonical state as of ``version`` (0 is the initial state)."""
        if not 0 <= version <= self._version:
            raise ValueError(f"version {version} outside 0..{self._version}")
        if self._settings.keep_history:
            return self._states[version]
        state = self._initial_state
        for patch in self._patches[:version]:
            state = apply_patch(state, patch)
        return state

    def view(self, player_id: str, version: Optional[int] = None) -> Any:
        """``player_id``'s masked view at ``version`` (default: current)."""
        if version is None:
            version = self._version
        return self._projector.view(self.state_at(version), player_id, version)

    def patches(self, since: int = 0, player_id: Optional[str] = None) -> list[PatchStreamItem]:
        """Patch stream from ``since`` to the current version.

        With ``player_id`` each patch is the difference between that player's
        consecutive masked views, so it never carries hidden values.
        """
        if not 0 <= since <= self._version:
            raise ValueError(f"since={since} outside 0..{self._version}")
        items = []
        for version in range(since, self._version):
            if player_id is None:
                patch = list(self._patches[version])
            else:
                patch = diff(self.view(player_id, version), self.view(player_id, version + 1))
            items.append(PatchStreamItem(
                from_version=version,
                to_version=version + 1,
                patch=patch,
                player_id=player_id,
            ))
        return items

    def snapshot(self, player_id: Optional[str] = None) -> Snapshot:
        """Current state (masked for ``player_id`` when given) plus its version.

        Frame ``data`` set through ``push_phase`` is server-side bookkeeping
        and is dropped from player snapshots; a player sees only frame
        structure (phase, participants, turn and acted lists).
        """
        phases = self._machine.stack
        if player_id is None:
            state = self._state
        else:
            state = self.view(player_id)
            for frame in phases.frames:
                frame.data = {}
        return Snapshot(
            version=self._version,
            state=state,
            phases=phases,
            player_id=player_id,
        )

    def export_log(self) -> ReplayLog:
        return ReplayLog(
            game=self._definition.name,
            game_version=self._definition.version,
            seed=self._seed,
            players=list(self._players),
            options=dict(self._options),
            initial_digest=self._initial_digest,
            entries=[entry.model_copy() for entry in self._entries],
        )

    # =========================================================================
    # Submissions
    # =========================================================================

    def submit(self, submission: ActionSubmission) -> SubmitResult:
        """Validate, authorize and apply one player action.

        Raises:
            ReducerFault: The reducer or a phase predicate failed. Nothing
                was committed and the RNG stream was rewound.
        """
        return self._run_live(submission, injected=False)

    def act(
        self,
        player_id: str,
        action_name: str,
        payload: Any = None,
        client_action_id: Optional[str] = None,
    ) -> SubmitResult:
        """Shorthand for ``submit(ActionSubmission(...))``."""
        return self.submit(ActionSubmission(
            action_name=action_name,
            acting_player_id=player_id,
            payload=payload if payload is not None else {},
            client_action_id=client_action_id,
        ))

    def inject_action(
        self,
        player_id: str,
        action_name: str,
        payload: Any = None,
        client_action_id: Optional[str] = None,
    ) -> SubmitResult:
        """Apply an action on a player's behalf (e.g. a timeout auto-pass).

        Skips the authorization predicate but still checks the payload and
        the phase's allowed actions. The entry is marked ``injected``.
        """
        submission = ActionSubmission(
            action_name=action_name,
            acting_player_id=player_id,
            payload=payload if payload is not None else {},
            client_action_id=client_action_id,
        )
        logger.warning("injecting %s for %s", action_name, player_id)
        return self._run_live(submission, injected=True)

    def force_end_phase(self, reason: str = "forced") -> SubmitResult:
        """Pop the top frame regardless of its end condition."""
        return self._force(EntryKind.FORCE_END_PHASE, reason)

    def force_terminate(self, reason: str = "terminated") -> SubmitResult:
        """End the game immediately."""
        return self._force(EntryKind.TERMINATE, reason)

    def apply_entry(self, entry: ActionLogEntry, verify_digest: Optional[bool] = None) -> SubmitResult:
        """Re-apply a logged entry, substituting its recorded draws.

        Used by ReplayEngine. Anything other than a faithful re-commit is a
        divergence.

        Raises:
            ReplayDivergence: Wrong sequence, a rejection, a reducer fault,
                a draw-count mismatch or a state digest mismatch.
        """
        if verify_digest is None:
            verify_digest = self._settings.verify_digests
        expected_digest = entry.state_digest if verify_digest else None

        if entry.sequence != self._version + 1:
            raise ReplayDivergence(
                f"entry {entry.sequence} cannot follow version {self._version}",
                sequence=entry.sequence,
            )

        try:
            if entry.kind == EntryKind.ACTION:
                submission = ActionSubmission(
                    action_name=entry.action_name or "",
                    acting_player_id=entry.acting_player_id or "",
                    payload=entry.payload,
                    client_action_id=entry.client_action_id,
                )
                draws = ReplayDraws(entry.draws, sequence=entry.sequence)
                result = self._process(submission, entry.injected, draws, expected_digest)
            else:
                result = self._force(entry.kind, entry.reason or "", expected_digest)
        except ReducerFault as fault:
            # The entry committed when it was recorded
            logger.error("entry %d faulted on replay: %s", entry.sequence, fault)
            raise ReplayDivergence(
                f"entry {entry.sequence} faulted on replay: {fault}",
                sequence=entry.sequence,
            ) from fault

        if result.status != SubmitStatus.ACCEPTED:
            raise ReplayDivergence(
                f"entry {entry.sequence} was {result.status.value} on replay: {result.error}",
                sequence=entry.sequence,
            )
        # Keep the live stream aligned so play can continue after a replay
        for _ in entry.draws:
            self._rng.draw()
        return result

    # =========================================================================
    # Internals
    # =========================================================================

    def _run_live(self, submission: ActionSubmission, injected: bool) -> SubmitResult:
        checkpoint = self._rng.checkpoint()
        try:
            return self._process(submission, injected, LiveDraws(self._rng))
        except ReducerFault as fault:
            self._rng.restore(checkpoint)
            if fault.action_name is None:
                fault.action_name = submission.action_name
            logger.error(
                "fault applying %s for %s at v%d: %s",
                submission.action_name, submission.acting_player_id, self._version, fault,
            )
            self._listener.on_fault(submission, fault)
            raise

    def _process(
        self,
        submission: ActionSubmission,
        injected: bool,
        draws: Draws,
        expected_digest: Optional[str] = None,
    ) -> SubmitResult:
        player_id = submission.acting_player_id
        token = submission.client_action_id
        if token is not None and (player_id, token) in self._tokens:
            original = self._tokens[(player_id, token)]
            logger.debug("duplicate token %r from %s (entry #%d)", token, player_id, original.sequence)
            self._listener.on_duplicate(submission, DuplicateAction(
                f"token {token!r} from {player_id!r} already logged as entry {original.sequence}",
                sequence=original.sequence,
            ))
            return SubmitResult(status=SubmitStatus.DUPLICATE, version=self._version, entry=original)

        try:
            if self._machine.terminated:
                raise GameTerminated(
                    f"game is over ({self.terminal_reason})", action_name=submission.action_name
                )
            definition = self._definition.get_action(submission.action_name)
            if definition is None:
                raise UnknownAction(
                    f"unknown action {submission.action_name!r}", action_name=submission.action_name
                )
            payload = validate_payload(definition, submission.payload)
            if player_id not in self._players:
                raise Unauthorized(f"unknown player {player_id!r}", action_name=definition.name)
            gate = self._context(player_id, ForbiddenDraws(), injected)
            check_authorized(
                definition,
                payload,
                gate,
                self._state,
                self._machine.effective_allowed(),
                skip_predicate=injected,
            )
        except ActionRejected as exc:
            return self._reject(submission, exc)

        ctx = self._context(player_id, draws, injected)
        result = self._executor.execute(definition, payload, ctx, self._state)
        if isinstance(draws, ReplayDraws):
            draws.finish()

        version = self._version + 1
        digest = state_digest(result.state)
        self._check_digest(version, expected_digest, digest)
        stack, transitions = self._machine.after_commit(
            result.state, player_id, definition.name, result.phase_requests, version
        )

        entry = ActionLogEntry(
            sequence=version,
            kind=EntryKind.ACTION,
            action_name=definition.name,
            payload=payload_to_log(payload),
            acting_player_id=player_id,
            client_action_id=token,
            injected=injected,
            draws=result.draws,
            state_digest=digest,
        )
        return self._commit(entry, result.state, result.patch, stack, transitions)

    def _force(self, kind: EntryKind, reason: str, expected_digest: Optional[str] = None) -> SubmitResult:
        if self._machine.terminated:
            error = GameTerminated(f"game is over ({self.terminal_reason})")
            return SubmitResult(
                status=SubmitStatus.REJECTED,
                version=self._version,
                error_code=error.code,
                error=str(error),
            )

        version = self._version + 1
        digest = state_digest(self._state)
        self._check_digest(version, expected_digest, digest)
        if kind == EntryKind.TERMINATE:
            stack, transitions = self._machine.terminate(reason)
        else:
            stack, transitions = self._machine.force_end(self._state, version, reason)
        logger.warning("%s at v%d: %s", kind.value, self._version, reason)

        entry = ActionLogEntry(sequence=version, kind=kind, reason=reason, state_digest=digest)
        return self._commit(entry, self._state, [], stack, transitions)

    def _commit(
        self,
        entry: ActionLogEntry,
        state: Any,
        patch: list[PatchOp],
        stack: PhaseStack,
        transitions: list[PhaseTransition],
    ) -> SubmitResult:
        self._version = entry.sequence
        self._state = state
        self._machine.commit(stack)
        if self._settings.keep_history:
            self._states.append(state)
        self._patches.append(patch)
        self._entries.append(entry)
        if entry.client_action_id is not None and entry.acting_player_id is not None:
            self._tokens[(entry.acting_player_id, entry.client_action_id)] = entry

        logger.debug("committed %s -> v%d (%d op(s))", entry, self._version, len(patch))
        self._listener.on_action_committed(entry, patch, state)
        self._notify_transitions(transitions)
        if stack.terminated:
            logger.info("%s over at v%d: %s", self._definition.name, self._version, stack.terminal_reason)
            self._listener.on_game_over(stack.terminal_reason, state, self.export_log())

        return SubmitResult(status=SubmitStatus.ACCEPTED, version=self._version, entry=entry, patch=patch)

    def _reject(self, submission: ActionSubmission, error: ActionRejected) -> SubmitResult:
        logger.debug("rejected %s from %s: %s", submission.action_name, submission.acting_player_id, error)
        self._listener.on_action_rejected(submission, error)
        return SubmitResult(
            status=SubmitStatus.REJECTED,
            version=self._version,
            error_code=error.code,
            error=str(error),
            field_errors=list(getattr(error, "field_errors", [])),
        )

    def _context(self, player_id: str, draws: Draws, injected: bool) -> ActionContext:
        frame = self._machine.current_frame
        return ActionContext(
            acting_player_id=player_id,
            active_player_id=self._machine.active_player,
            phase=frame.phase if frame else None,
            frame=frame.model_copy(deep=True) if frame else None,
            players=self._players,
            draws=draws,
            version=self._version,
            injected=injected,
        )

    def _check_digest(self, version: int, expected: Optional[str], actual: str) -> None:
        if expected is not None and expected != actual:
            logger.error("state digest mismatch at v%d", version)
            raise ReplayDivergence(
                f"state at version {version} does not match the recorded digest",
                sequence=version,
                expected=expected,
                actual=actual,
            )

    def _notify_transitions(self, transitions: list[PhaseTransition]) -> None:
        for transition in transitions:
            if transition.kind == TransitionKind.ENTER:
                self._listener.on_phase_enter(transition.frame, transition.depth)
            else:
                self._listener.on_phase_exit(transition.frame, transition.depth)
