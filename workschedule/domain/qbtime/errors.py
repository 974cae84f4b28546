"""QuickBooks Time error taxonomy, each error carrying the HTTP status it maps to"""

from typing import Any, Optional


class QBTimeError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **detail: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, **self.detail}


# Validation errors


class NotConnectedError(QBTimeError):
    """No bearer token available - distinct from the service rejecting one"""

    status_code = 400

    def __init__(self, message: str = "Not connected - enter your API token first"):
        super().__init__(message)


class NoEntriesError(QBTimeError):
    status_code = 400


class NoCalendarError(QBTimeError):
    status_code = 400

    def __init__(self, message: str = "No schedule calendars found in your QB Time account"):
        super().__init__(message)


class MissingDateError(QBTimeError):
    status_code = 400

    def __init__(self, schedule_id: str):
        super().__init__("Schedule has no date - pick a date before sending", scheduleId=schedule_id)


# Upstream failures


class UpstreamError(QBTimeError):
    """Non-success response from the external service, passed through with its status and body"""

    def __init__(self, action: str, status_code: int, body: Any):
        text = body if isinstance(body, str) else str(body)
        super().__init__(f"Failed to {action}: {status_code} {text}", status_code=status_code)
        self.body = body


# Lookup misses


class LookupMissError(QBTimeError):
    status_code = 404


class GroupNotFoundError(LookupMissError):
    def __init__(self, group_name: str, available_groups: list[str]):
        super().__init__(f'Group "{group_name}" not found', availableGroups=available_groups)
        self.group_name = group_name
        self.available_groups = available_groups


class JobNotFoundError(LookupMissError):
    def __init__(self, job: str):
        super().__init__(f'Job "{job}" not found in QB Time', job=job)
        self.job = job


class TechnicianNotFoundError(LookupMissError):
    def __init__(self, worker: str):
        super().__init__(f'Technician "{worker}" not found in QB Time', technician=worker)
        self.worker = worker
