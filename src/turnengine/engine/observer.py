"""Client-side cache of a (masked) state, advanced by the patch stream."""

from typing import Any, Iterable, Optional

from turnengine.engine.patch import apply_patch
from turnengine.errors import VersionGap
from turnengine.models.results import PatchStreamItem, Snapshot


class ObserverView:
    """What a remote observer holds: one state value and its version.

    Usage:
        view = ObserverView.from_snapshot(engine.snapshot("p1"))
        view.apply_all(engine.patches(since=view.version, player_id="p1"))
    """

    def __init__(self, state: Any, version: int, player_id: Optional[str] = None):
        self.state = state
        self.version = version
        self.player_id = player_id

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "ObserverView":
        return cls(snapshot.state, snapshot.version, snapshot.player_id)

    def apply(self, item: PatchStreamItem) -> Any:
        """Advance by one patch.

        Raises:
            VersionGap: The patch does not start at this view's version.
            ValueError: The patch was computed for a different player.
        """
        if item.from_version != self.version:
            raise VersionGap(
                f"patch {item.from_version}->{item.to_version} does not apply at version {self.version}",
                expected=self.version,
                actual=item.from_version,
            )
        if item.player_id != self.player_id:
            raise ValueError(f"patch for {item.player_id!r} applied to view of {self.player_id!r}")
        self.state = apply_patch(self.state, item.patch)
        self.version = item.to_version
        return self.state

    def apply_all(self, items: Iterable[PatchStreamItem]) -> Any:
        for item in items:
            self.apply(item)
        return self.state
