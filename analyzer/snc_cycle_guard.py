"""
Cycle guard for the structural comparator.

Tracks which target types are being explored during one top-level
comparison so that self-referential types terminate.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from enum import Enum
from typing import Dict, Hashable, Optional, Set, Tuple


class CyclePolicy(Enum):
    """
    How a RecursionPath remembers targets.

    PATH:   a target is marked only while its own subtree is being compared.
            Only a true cycle (the target reappearing beneath itself) is
            short-circuited.
    MEMO:   as PATH, and finished verdicts are cached per
            (target, source) pair for the rest of the top-level comparison.
    SHARED: a target stays marked until the top-level comparison ends, so a
            type met again in a sibling branch is assumed compatible without
            being checked.
    """
    PATH = "path"
    MEMO = "memo"
    SHARED = "shared"

    @staticmethod
    def parse(value: str) -> "CyclePolicy":
        try:
            return CyclePolicy(value.strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in CyclePolicy)
            raise ValueError(f"unknown cycle policy '{value}' (expected one of: {choices})") from None


class RecursionPath:
    """
    Target types currently explored by one top-level comparison.

    Descriptors hash by identity, so membership is identity membership. A
    fresh instance must be created for every top-level comparison; instances
    are never shared between call sites.
    """

    def __init__(self, policy: CyclePolicy = CyclePolicy.PATH):
        self.policy = policy
        self._active: Set[Hashable] = set()
        self._verdicts: Dict[Tuple[Hashable, Hashable], bool] = {}

    def __contains__(self, target: Hashable) -> bool:
        return target in self._active

    @property
    def depth(self) -> int:
        return len(self._active)

    def lookup(self, target: Hashable, source: Hashable) -> Optional[bool]:
        """
        Return a verdict known without exploring (target, source), or None.

        A target already on the path is a cycle and is assumed compatible.
        """
        if target in self._active:
            return True
        if self.policy is CyclePolicy.MEMO:
            return self._verdicts.get((target, source))
        return None

    def enter(self, target: Hashable, source: Hashable) -> None:
        self._active.add(target)

    def leave(self, target: Hashable, source: Hashable, verdict: bool) -> None:
        if self.policy is CyclePolicy.SHARED:
            return
        self._active.discard(target)
        if self.policy is CyclePolicy.MEMO:
            self._verdicts[(target, source)] = verdict
