"""
Job pipeline stages, display labels and phase groupings.

Stage values are part of the storage contract and must not be renamed.
Any stage may move to any other stage; there is no transition table.
"""

from enum import Enum


class JobStage(str, Enum):
    # Appointments
    APPOINTMENT_SCHEDULED = "APPOINTMENT_SCHEDULED"
    # Sales phase
    ESTIMATE_IN_PROGRESS = "ESTIMATE_IN_PROGRESS"
    ESTIMATE_SENT = "ESTIMATE_SENT"
    ENGAGED_DESIGN_REVIEW = "ENGAGED_DESIGN_REVIEW"
    CONTRACT_OUT = "CONTRACT_OUT"
    CONTRACT_SIGNED = "CONTRACT_SIGNED"  # Legacy, not shown in the pipeline
    # Job readiness phase
    DEPOSIT_PENDING = "DEPOSIT_PENDING"
    JOB_PREP = "JOB_PREP"
    TAKEOFF_COMPLETE = "TAKEOFF_COMPLETE"
    READY_TO_SCHEDULE = "READY_TO_SCHEDULE"
    # Execution phase
    SCHEDULED = "SCHEDULED"
    IN_PRODUCTION = "IN_PRODUCTION"
    INSTALLED = "INSTALLED"
    FINAL_PAYMENT_CLOSED = "FINAL_PAYMENT_CLOSED"


ALL_STAGES: frozenset[str] = frozenset(s.value for s in JobStage)

STAGE_LABELS: dict[str, str] = {
    JobStage.APPOINTMENT_SCHEDULED.value: "Appointment Scheduled",
    JobStage.ESTIMATE_IN_PROGRESS.value: "Estimate Current, first 5 days",
    JobStage.ESTIMATE_SENT.value: "Estimate Sent",
    JobStage.ENGAGED_DESIGN_REVIEW.value: "Design Review",
    JobStage.CONTRACT_OUT.value: "Contract Out",
    JobStage.CONTRACT_SIGNED.value: "Contract Signed",
    JobStage.DEPOSIT_PENDING.value: "Signed / Deposit Pending",
    JobStage.JOB_PREP.value: "Job Prep",
    JobStage.TAKEOFF_COMPLETE.value: "Takeoff Complete",
    JobStage.READY_TO_SCHEDULE.value: "Ready to Schedule",
    JobStage.SCHEDULED.value: "Scheduled",
    JobStage.IN_PRODUCTION.value: "In Production",
    JobStage.INSTALLED.value: "Installed",
    JobStage.FINAL_PAYMENT_CLOSED.value: "Final Payment Closed",
}

STAGE_PHASES: dict[str, list[str]] = {
    "appointments": [JobStage.APPOINTMENT_SCHEDULED.value],
    "sales": [
        JobStage.ESTIMATE_IN_PROGRESS.value,
        JobStage.ESTIMATE_SENT.value,
        JobStage.ENGAGED_DESIGN_REVIEW.value,
        JobStage.CONTRACT_OUT.value,
    ],
    "readiness": [
        JobStage.DEPOSIT_PENDING.value,
        JobStage.JOB_PREP.value,
        JobStage.TAKEOFF_COMPLETE.value,
        JobStage.READY_TO_SCHEDULE.value,
    ],
    "execution": [
        JobStage.SCHEDULED.value,
        JobStage.IN_PRODUCTION.value,
        JobStage.INSTALLED.value,
        JobStage.FINAL_PAYMENT_CLOSED.value,
    ],
}

# Active pipeline columns, in order (excludes CONTRACT_SIGNED)
PIPELINE_STAGES: list[str] = [stage for phase in STAGE_PHASES.values() for stage in phase]

# Used by both the column default and the create operation
DEFAULT_CREATION_STAGE = JobStage.APPOINTMENT_SCHEDULED.value


def is_valid_stage(stage) -> bool:
    return isinstance(stage, str) and stage in ALL_STAGES


def stage_label(stage: str) -> str:
    return STAGE_LABELS.get(stage, stage)
