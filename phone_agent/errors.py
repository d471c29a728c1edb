"""
Automation Errors
=================

Exception taxonomy for the phone automation loop.

Expected failures (unreadable screen, bad LLM output, failed command)
are raised by the component that detects them and absorbed by the loop
into its step log. Only errors outside this hierarchy end a run with
an exception.
"""


class AutomationError(Exception):
    """Base class for expected automation failures."""

    pass


class ObservationError(AutomationError):
    """The accessibility tree could not be read or compressed to zero elements."""

    pass


class DecisionError(AutomationError):
    """The LLM could not be reached or its output is not a valid action."""

    pass


class ActionExecutionError(AutomationError):
    """A decided action could not be carried out on the device."""

    pass


class StallError(AutomationError):
    """The same action was decided too many times in a row."""

    def __init__(self, message: str, signature: str = "", repeats: int = 0):
        super().__init__(message)
        self.signature = signature
        self.repeats = repeats


class CommandChannelError(Exception):
    """The command store itself failed (transport or HTTP error)."""

    pass
