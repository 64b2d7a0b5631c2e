from datetime import datetime

from pydantic import BaseModel, Field

from hirelane.schemas.jobs import JobOut


class SaveJobRequest(BaseModel):
    job_id: int = Field(ge=1)


class SavedJobOut(BaseModel):
    id: int
    candidate_id: int
    job_id: int
    created_at: datetime
    job: JobOut
