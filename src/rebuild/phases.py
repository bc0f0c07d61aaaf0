"""Workflow phases and the policy selecting which of them run."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import FrozenSet, List

from ..common.config import RebuildOptions


class Phase(Enum):
    """Phases of a rebuild, in execution order."""

    INIT = auto()
    DOWNLOAD = auto()
    VALIDATE = auto()
    PRUNE = auto()
    REBUILD = auto()
    PUBLISH = auto()
    CLEANUP = auto()


ORDERED_PHASES: List[Phase] = list(Phase)

# Phases that configuration may switch off
OPTIONAL_PHASES = frozenset({Phase.VALIDATE, Phase.PRUNE, Phase.PUBLISH, Phase.CLEANUP})


@dataclass(frozen=True)
class PhasePolicy:
    """Set of enabled phases.

    Mandatory phases are always enabled. CLEANUP only runs when PUBLISH
    does, since deleting superseded objects is only safe once the new
    index has been published.
    """

    enabled: FrozenSet[Phase]

    @classmethod
    def create(
        cls,
        validate: bool = True,
        prune: bool = False,
        publish: bool = True,
    ) -> "PhasePolicy":
        enabled = set(ORDERED_PHASES) - OPTIONAL_PHASES
        if validate:
            enabled.add(Phase.VALIDATE)
        if prune:
            enabled.add(Phase.PRUNE)
        if publish:
            enabled.update({Phase.PUBLISH, Phase.CLEANUP})
        return cls(enabled=frozenset(enabled))

    @classmethod
    def from_options(cls, options: RebuildOptions) -> "PhasePolicy":
        return cls.create(
            validate=options.validate,
            prune=options.remove_old_snapshots,
            publish=options.upload,
        )

    def is_enabled(self, phase: Phase) -> bool:
        return phase in self.enabled

    @property
    def is_dry_run(self) -> bool:
        return Phase.PUBLISH not in self.enabled

    def plan(self) -> List[Phase]:
        """Enabled phases in execution order."""
        return [phase for phase in ORDERED_PHASES if phase in self.enabled]
