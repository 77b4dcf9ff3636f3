class FixtureEngineError(Exception):
    """Base exception for everything the match engine reports to callers."""

    pass


class ValidationError(FixtureEngineError):
    """Input references the wrong team, player or role, or is malformed."""

    pass


class InvalidStateError(FixtureEngineError):
    """Operation attempted outside the lifecycle state that allows it."""

    pass


class InvalidTransitionError(InvalidStateError):
    """Fixture lifecycle transition not allowed from the current status."""

    pass


class NotFoundError(FixtureEngineError):
    """Referenced fixture, match, team or player does not exist."""

    pass


class AuthorizationError(FixtureEngineError):
    """Caller may not mutate this fixture."""

    pass


class StorageError(FixtureEngineError):
    """The backing store failed to read or commit. Safe for the caller to retry."""

    pass
