from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ..identity.models import Company, Team
from ..opportunities.models import Opportunity


ApplicationStatus = Literal["submitted", "reviewing", "interviewing", "accepted", "rejected"]
APPLICATION_STATUSES: tuple[str, ...] = ("submitted", "reviewing", "interviewing", "accepted", "rejected")

InterviewFormat = Literal["video", "in_person", "phone"]
Recommendation = Literal["proceed", "hold", "reject"]


class InterviewFeedback(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    recommendation: Recommendation
    notes: str | None = None
    interviewerName: str = Field(..., min_length=1)
    submittedBy: str
    submittedAt: datetime


class InterviewRecord(BaseModel):
    scheduledAt: datetime
    format: InterviewFormat
    durationMinutes: int = Field(..., gt=0, le=24 * 60)
    participants: list[str] = Field(default_factory=list)
    notes: str | None = None
    location: str | None = None
    meetingLink: str | None = None
    # Append-only; entries are never edited or removed.
    feedback: list[InterviewFeedback] = Field(default_factory=list)


class OfferDetails(BaseModel):
    compensation: float = Field(..., gt=0)
    equityOffer: str | None = None
    benefits: list[str] = Field(default_factory=list)
    startDate: datetime | None = None
    signingBonus: float | None = Field(default=None, ge=0)
    additionalTerms: str | None = None
    expirationDate: datetime | None = None


class Application(BaseModel):
    id: str
    teamId: str
    opportunityId: str
    appliedBy: str
    status: ApplicationStatus = "submitted"
    version: int = 1

    # Team-owned content (editable while submitted).
    coverLetter: str | None = None
    proposedCompensation: float | None = None
    proposedEquity: str | None = None
    availabilityDate: datetime | None = None
    customProposal: str | None = None
    teamFitExplanation: str | None = None
    questionsForCompany: str | None = None
    attachments: list[str] = Field(default_factory=list)

    # Company-owned review artifacts.
    rejectionReason: str | None = None
    responseMessage: str | None = None
    recruiterNotes: str | None = None
    hiringManagerNotes: str | None = None
    responseDeadline: datetime | None = None

    interview: InterviewRecord | None = None
    offer: OfferDetails | None = None

    appliedAt: datetime
    updatedAt: datetime
    reviewedAt: datetime | None = None
    offerMadeAt: datetime | None = None
    finalDecisionAt: datetime | None = None


# ---- operation inputs ----

CONTENT_FIELDS: tuple[str, ...] = (
    "coverLetter",
    "proposedCompensation",
    "proposedEquity",
    "availabilityDate",
    "customProposal",
    "teamFitExplanation",
    "questionsForCompany",
    "attachments",
)


class CreateApplicationInput(BaseModel):
    teamId: str = Field(..., min_length=1)
    opportunityId: str = Field(..., min_length=1)
    coverLetter: str | None = Field(default=None, max_length=10000)
    proposedCompensation: float | None = Field(default=None, ge=0)
    proposedEquity: str | None = None
    availabilityDate: datetime | None = None
    customProposal: str | None = Field(default=None, max_length=20000)
    teamFitExplanation: str | None = Field(default=None, max_length=10000)
    questionsForCompany: str | None = Field(default=None, max_length=5000)
    attachments: list[str] = Field(default_factory=list, max_length=20)


class UpdateContentInput(BaseModel):
    coverLetter: str | None = Field(default=None, max_length=10000)
    proposedCompensation: float | None = Field(default=None, ge=0)
    proposedEquity: str | None = None
    availabilityDate: datetime | None = None
    customProposal: str | None = Field(default=None, max_length=20000)
    teamFitExplanation: str | None = Field(default=None, max_length=10000)
    questionsForCompany: str | None = Field(default=None, max_length=5000)
    attachments: list[str] | None = Field(default=None, max_length=20)


class UpdateStatusInput(BaseModel):
    status: ApplicationStatus
    rejectionReason: str | None = None
    responseMessage: str | None = None
    recruiterNotes: str | None = None
    hiringManagerNotes: str | None = None
    responseDeadline: datetime | None = None


class ScheduleInterviewInput(BaseModel):
    scheduledAt: datetime
    format: InterviewFormat
    durationMinutes: int = Field(..., gt=0, le=24 * 60)
    participants: list[str] = Field(default_factory=list)
    notes: str | None = None
    location: str | None = None
    meetingLink: str | None = None


class InterviewFeedbackInput(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    recommendation: Recommendation
    notes: str | None = None
    interviewerName: str = Field(..., min_length=1)


class MakeOfferInput(BaseModel):
    compensation: float = Field(..., gt=0)
    equityOffer: str | None = None
    benefits: list[str] = Field(default_factory=list)
    startDate: datetime | None = None
    signingBonus: float | None = Field(default=None, ge=0)
    additionalTerms: str | None = None
    expirationDate: datetime | None = None


class ApplicationFilter(BaseModel):
    teamId: str | None = None
    opportunityId: str | None = None
    status: ApplicationStatus | None = None


class PageRequest(BaseModel):
    limit: int = 20
    nextToken: str | None = None


class ApplicationPage(BaseModel):
    data: list[Application]
    nextToken: str | None = None


# ---- read projections ----

class ApplicationDetail(BaseModel):
    application: Application
    team: Team | None = None
    opportunity: Opportunity | None = None
    company: Company | None = None


class ApplicationStats(BaseModel):
    teamApplications: dict[str, int] = Field(default_factory=dict)
    receivedApplications: dict[str, int] = Field(default_factory=dict)
