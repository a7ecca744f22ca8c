from gardengear.workshop.jobs.api import router
from gardengear.workshop.jobs.models import Job, JobHistoryEntry
from gardengear.workshop.jobs.schemas import JobAssign, JobCreate, JobRead, JobStatus, JobStatusUpdate
from gardengear.workshop.jobs.service import JobService, job_service

__all__ = [
    "router",
    "Job",
    "JobHistoryEntry",
    "JobAssign",
    "JobCreate",
    "JobRead",
    "JobStatus",
    "JobStatusUpdate",
    "JobService",
    "job_service",
]
