# jobs/state.py
from novelbridge.jobs.errors import InvalidTransitionError
from novelbridge.storage.models import JobStatus, SubtaskStatus

# Estados terminales no tienen salida.
JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING:     frozenset({JobStatus.IN_PROGRESS, JobStatus.CANCELLED, JobStatus.FAILED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED:   frozenset(),
    JobStatus.FAILED:      frozenset(),
    JobStatus.CANCELLED:   frozenset(),
}

SUBTASK_TRANSITIONS: dict[SubtaskStatus, frozenset[SubtaskStatus]] = {
    SubtaskStatus.PENDING:     frozenset({SubtaskStatus.IN_PROGRESS, SubtaskStatus.CANCELLED, SubtaskStatus.FAILED}),
    SubtaskStatus.IN_PROGRESS: frozenset({SubtaskStatus.DONE, SubtaskStatus.FAILED, SubtaskStatus.CANCELLED}),
    SubtaskStatus.DONE:        frozenset(),
    SubtaskStatus.FAILED:      frozenset(),
    SubtaskStatus.CANCELLED:   frozenset(),
}


def can_transition_job(current: JobStatus, target: JobStatus) -> bool:
    return target in JOB_TRANSITIONS[current]


def can_transition_subtask(current: SubtaskStatus, target: SubtaskStatus) -> bool:
    return target in SUBTASK_TRANSITIONS[current]


def check_job_transition(current: JobStatus, target: JobStatus) -> None:
    if not can_transition_job(current, target):
        raise InvalidTransitionError("job", current.value, target.value)


def check_subtask_transition(current: SubtaskStatus, target: SubtaskStatus) -> None:
    if not can_transition_subtask(current, target):
        raise InvalidTransitionError("subtarea", current.value, target.value)


def is_terminal_job(status: JobStatus) -> bool:
    return not JOB_TRANSITIONS[status]


def is_terminal_subtask(status: SubtaskStatus) -> bool:
    return not SUBTASK_TRANSITIONS[status]
