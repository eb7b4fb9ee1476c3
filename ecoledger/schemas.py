"""Pydantic v2 request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Verification collaborator
# ---------------------------------------------------------------------------


class VerificationResult(BaseModel):
    """Image match result supplied by the external verifier."""

    model_config = ConfigDict(populate_by_name=True)

    waste_type_match: bool = Field(..., alias="wasteTypeMatch")
    quantity_match: bool = Field(..., alias="quantityMatch")
    confidence: float = Field(..., ge=0.0, le=1.0)
    notes: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class ReportCreate(BaseModel):
    location: str = Field(..., min_length=1, max_length=500)
    waste_type: str = Field(..., min_length=1, max_length=255)
    amount: str = Field(..., min_length=1, max_length=255)
    image_ref: str | None = None
    verification_result: VerificationResult | None = None


class TaskCompleteRequest(BaseModel):
    verification_result: VerificationResult | None = None
    image_ref: str | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    location: str
    waste_type: str
    amount: str
    image_ref: str | None
    verification_result: dict | None
    status: str
    collector_id: UUID | None
    created_at: datetime
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    verified_at: datetime | None = None


class TaskListResponse(BaseModel):
    items: list[TaskResponse]
    total: int
    page: int
    per_page: int


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    type: str
    amount: int
    description: str
    task_id: UUID | None = None
    created_at: datetime


class BalanceResponse(BaseModel):
    user_id: UUID
    balance: int
    computed_at: datetime


class CompletionResponse(BaseModel):
    task: TaskResponse
    entry: LedgerEntryResponse
    reward_amount: int
    message: str


class RewardItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    points_required: int
    is_available: bool


class RedemptionResponse(BaseModel):
    entry: LedgerEntryResponse
    balance: int


class RedeemAllResponse(BaseModel):
    entry: LedgerEntryResponse
    redeemed: int


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    message: str
    notification_type: str
    is_read: bool
    image_ref: str | None = None
    metadata: dict = Field(default_factory=dict)
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    unread_count: int


class NotificationUnreadCountResponse(BaseModel):
    unread_count: int


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=5, max_length=200)
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    display_name: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    user: UserResponse


class AccountDeleteRequest(BaseModel):
    password: str = Field(..., min_length=1)


class UserStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    total_reports: int
    total_earnings: int
    completed_tasks: int
    rank: int | None = None
    waste_collected_kg: float
    co2_saved_kg: float


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: UUID
    display_name: str
    balance: int
    reports_submitted: int
    tasks_completed: int
    score: int


class LeaderboardResponse(BaseModel):
    items: list[LeaderboardEntry]
    total_users: int
    generated_at: datetime


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error_type: str
    detail: str
