# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain exceptions. Controllers translate them to HTTP status codes:
KeyError subclasses -> 404, ValueError subclasses -> 400.
"""


class InvalidTimeZone(ValueError):
    """Raised when a schedule names a zone missing from the IANA database."""

    def __init__(self, timezone: str) -> None:
        self.timezone = timezone
        super().__init__(f"Unknown time zone '{timezone}'")


class NotFound(KeyError):
    """Base class for missing entities."""

    entity = "Resource"

    def __init__(self, entity_id: int) -> None:
        self.entity_id = entity_id
        super().__init__(entity_id)

    def __str__(self) -> str:
        return f"{self.entity} with ID {self.entity_id} not found"


class ScheduleNotFound(NotFound):
    entity = "Schedule"


class RotationNotFound(NotFound):
    entity = "Rotation"


class OverrideNotFound(NotFound):
    entity = "Override"


class UserNotFound(NotFound):
    entity = "User"


class MemberNotFound(KeyError):
    """A user is not a member of the given rotation."""

    def __init__(self, rotation_id: int, user_id: int) -> None:
        self.rotation_id = rotation_id
        self.user_id = user_id
        super().__init__(user_id)

    def __str__(self) -> str:
        return f"User {self.user_id} is not a member of rotation {self.rotation_id}"
