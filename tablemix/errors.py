"""Exceptions raised by tablemix."""


class TablemixError(Exception):
    """Base class for all tablemix errors."""


class NotFoundError(TablemixError):
    """An event, guest or record does not exist."""


class EmptyGuestListError(TablemixError):
    """An event has no guests to seat."""


class NoPreviewError(TablemixError):
    """Commit or discard was requested but nothing is staged."""


class PreviewAssignmentNotFoundError(TablemixError):
    """No staged row exists for the requested guest and round."""


class InvalidConstraintError(TablemixError):
    """A constraint record has the wrong type, arity or table."""


class ConfigError(TablemixError):
    """A configuration or input file could not be understood."""
