from typing import Optional


class LookupFailure(Exception):
    """Raised when a team owner cannot be expanded into its members."""

    group: str

    def __init__(self, group: str, reason: Optional[str] = None):
        self.group = group
        message = f"Unable to look up members of team {group}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class UnsupportedTrigger(Exception):
    event: str
    action: Optional[str]

    def __init__(self, event: str, action: Optional[str] = None):
        self.event = event
        self.action = action
        if action is None:
            super().__init__(f"Unexpected event: {event}")
        else:
            super().__init__(f"Unexpected event: {event} (action {action})")


class MissingConfiguration(Exception):
    name: str

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"'{name}' is not set")
