from __future__ import annotations


class InboxError(Exception):
    pass


class Unauthorized(InboxError):
    pass


class ValidationError(InboxError):
    pass


class MalformedRequest(InboxError):
    def __init__(self, message: str = "Invalid JSON payload"):
        super().__init__(message)


class ConstraintViolation(InboxError):
    def __init__(self, field: str, value: str):
        super().__init__(f"Unique constraint violated on {field}: {value}")
        self.field = field
        self.value = value


class SubmissionConflict(InboxError):
    def __init__(self, slug: str):
        super().__init__(f"Concurrent submission claimed slug {slug}; retry the request")
        self.slug = slug


class StoreUnavailable(InboxError):
    def __init__(self, message: str = "Submission store is not configured"):
        super().__init__(message)
