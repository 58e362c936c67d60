"""Exceptions raised while building IR."""


class IRBuilderError(Exception):
    """Base class of all construction-time errors."""


class ScopeMismatchError(IRBuilderError):
    """A call targets a frame that is not open, not innermost, or of the wrong kind."""


class DuplicateSettingError(IRBuilderError):
    """A single-use field of a frame was set more than once."""


class PairingError(IRBuilderError):
    """`Then`/`Else` used outside the If -> Then -> Else sequence."""


class ArgumentShapeError(IRBuilderError, ValueError):
    """Mismatched lengths, invalid ranges or unresolvable bindings."""


class UnclosedScopeError(IRBuilderError):
    """The builder context exited while frames were still open."""
