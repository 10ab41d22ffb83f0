"""
Facade tying one store, scope prefix, logger and renderer together.

ChangeControl owns the changelog for a scope and builds changesets bound
to it, so change-set definition modules only ever see this object.
"""

from __future__ import annotations

from typing import Iterable

from .change import Mode
from .changelog import ChangeLog, LedgerEntry
from .changeset import ChangeSet, RunReport
from .console import ChangeLogger, ConsoleLogger
from .render import Renderer
from .store import Store

DEFAULT_PREFIX = "changecontrol"


class ChangeControl:
    def __init__(
        self,
        store: Store,
        *,
        prefix: str = DEFAULT_PREFIX,
        logger: ChangeLogger | None = None,
        renderer: Renderer | None = None,
        user: str | None = None,
        owner_id: str | None = None,
    ):
        self.store = store
        self.prefix = prefix
        self.logger = logger or ConsoleLogger()
        self.changelog = ChangeLog(
            store,
            prefix=prefix,
            logger=self.logger,
            renderer=renderer,
            user=user,
            owner_id=owner_id,
        )

    def change_set(self, change_set_id: str) -> ChangeSet:
        return ChangeSet(change_set_id, self.changelog, logger=self.logger)

    def run(self, mode: Mode | str, change_sets: Iterable[ChangeSet], partial_id: str = "*") -> list[RunReport]:
        """
        Run `mode` over each changeset in order.

        Stops at the first failing changeset; its error propagates.
        """
        return [change_set.run(mode, partial_id) for change_set in change_sets]

    def dump(self, renderer: Renderer | None = None) -> list[LedgerEntry]:
        return self.changelog.dump(renderer)

    def clear(self, partial_id: str = "*") -> list[str]:
        return self.changelog.clear(partial_id)

    def unlock(self, force: bool = True) -> bool:
        return self.changelog.unlock(force)
