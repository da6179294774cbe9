"""Error and warning types raised by the regression core."""

from __future__ import annotations

import inspect
import os

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


class DimensionMismatch(ValueError):
    """Input arrays disagree on their row or column counts.

    Raised before any computation takes place, so a failed batch call
    never returns partial output.
    """


class DegenerateColumnWarning(RuntimeWarning):
    """Some (response, variant) fits produced non-finite estimates.

    Emitted at most once per regression call.  The affected entries are
    ``NaN`` in the returned arrays; their positions are preserved.
    """


def find_stack_level() -> int:
    """Stack level of the first frame outside the mixqtl package.

    Passing the result as ``stacklevel`` to :func:`warnings.warn` makes
    the warning point at user code however deeply the package calls
    itself (pipeline, preprocessor, regressor).
    """
    frame = inspect.currentframe()
    level = 0
    try:
        while frame is not None and os.path.abspath(
            inspect.getfile(frame)
        ).startswith(_PACKAGE_DIR + os.sep):
            frame = frame.f_back
            level += 1
    finally:
        del frame
    return level


__all__ = ["DegenerateColumnWarning", "DimensionMismatch"]
