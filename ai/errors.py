"""Failures raised while a mook takes its turn."""

from __future__ import annotations


class MookError(RuntimeError):
    """Base class for turn failures caught by the registry."""


class Abort(MookError):
    """The turn stops without anything being wrong with the system.

    Raised when the user declines or closes a dialog, exploration is
    disabled, or a required token or combat is missing.
    """


class PlanningFailure(MookError):
    """The planner could not produce an executable turn."""


__all__ = ["Abort", "MookError", "PlanningFailure"]
