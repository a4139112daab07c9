"""
Domain errors for cleaning scheduling.
Each error carries a machine-readable kind and a human-readable message;
routes render them through the handler registered in main.create_app.
"""


class CleaningError(Exception):
    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class InvalidInput(CleaningError):
    kind = "invalid_input"
    status_code = 400


class NoEligibleStaff(CleaningError):
    kind = "no_eligible_staff"
    status_code = 400


class IneligibleAssignee(CleaningError):
    kind = "ineligible_assignee"
    status_code = 400


class NotFound(CleaningError):
    kind = "not_found"
    status_code = 404


class Forbidden(CleaningError):
    kind = "forbidden"
    status_code = 403


class ConflictOrConstraint(CleaningError):
    kind = "conflict"
    status_code = 409
