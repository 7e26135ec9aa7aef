"""Exceptions raised by rules engines."""


class IllegalActionError(Exception):
    """The proposed action is not legal in the given position.

    Raised by RulesEngine.apply(). The session layer converts it into an
    ILLEGAL_ACTION rejection and leaves the position untouched.
    """

    def __init__(self, action: object, reason: str = "") -> None:
        self.action = action
        self.reason = reason
        message = f"illegal action {action!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
