"""Typed failures raised by the job lifecycle engine and its request layer"""


class PipelineError(Exception):
    """Base class for engine failures"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PipelineError):
    """Malformed input, rejected before any write"""

    status_code = 400


class NotFoundError(PipelineError):
    """Referenced job, customer or user does not exist"""

    status_code = 404


class InvalidTransition(PipelineError):
    """Requested state change is a no-op (same stage, already archived, ...)"""

    status_code = 400


class AuthenticationError(PipelineError):
    """No acting user could be resolved for the request"""

    status_code = 401


class SystemicFailure(PipelineError):
    """Persistence layer unreachable; fatal for the whole operation"""

    status_code = 503


class AuditEmissionFailure(PipelineError):
    """An Activity could not be written after the primary entity write committed"""


class SweepItemFailure(PipelineError):
    """A single job inside a sweep batch failed to update"""

    def __init__(self, job_id, message: str):
        super().__init__(message)
        self.job_id = job_id

    def to_dict(self) -> dict:
        return {"jobId": self.job_id, "error": self.message}
