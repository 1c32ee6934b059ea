"""Pydantic schemas for request/response validation."""

from typing import Generic, Optional, TypeVar
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator

from dietconnect.models.models import (
    ActivityLevel,
    ComplianceColor,
    DeliveryStatus,
    Gender,
    InvitationStatus,
    MealLogStatus,
    MealType,
    PlanStatus,
    ReferralSource,
    UserRole,
)

T = TypeVar("T")

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class PageMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class Page(BaseModel, Generic[T]):
    items: list[T]
    meta: PageMeta


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# Organization schemas
class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: str = Field("India", max_length=100)
    timezone: str = Field("Asia/Kolkata", max_length=50)
    owner_full_name: str = Field(..., min_length=1, max_length=255)
    owner_email: Optional[str] = Field(None, max_length=255)
    owner_phone: Optional[str] = Field(None, max_length=20)


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = Field(None, max_length=50)


class OrganizationResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    website: Optional[str]
    city: Optional[str]
    country: Optional[str]
    timezone: Optional[str]
    subscription_tier: Optional[str]
    subscription_status: Optional[str]
    max_clients: Optional[int]
    is_active: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class OrganizationDetail(OrganizationResponse):
    client_count: int = 0
    user_count: int = 0


# Staff user schemas
class UserResponse(BaseModel):
    id: str
    org_id: str
    role: UserRole
    email: str
    full_name: str
    phone: Optional[str]
    specialization: Optional[str]
    bio: Optional[str]
    is_active: bool
    last_login_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class MeResponse(UserResponse):
    organization: OrganizationResponse


class OrganizationCreated(BaseModel):
    organization: OrganizationResponse
    user: UserResponse


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    specialization: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = None


class DeviceTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=255)


# Team schemas
class TeamMember(UserResponse):
    client_count: int = 0
    initials: str = ""


class InvitationCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    role: UserRole = UserRole.DIETITIAN

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v.strip().lower()

    @field_validator("role")
    @classmethod
    def no_owner_invites(cls, v: UserRole) -> UserRole:
        if v == UserRole.OWNER:
            raise ValueError("Owners cannot be invited")
        return v


class InvitationResponse(BaseModel):
    id: str
    email: str
    role: UserRole
    status: InvitationStatus
    expires_at: datetime
    invite_url: str


class InvitationDetail(BaseModel):
    organization_name: str
    email: str
    role: UserRole
    expires_at: datetime


class JoinRequest(BaseModel):
    token: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)


class RoleUpdate(BaseModel):
    role: UserRole


# Client schemas
class DietitianSummary(BaseModel):
    id: str
    full_name: str
    email: str
    phone: Optional[str]

    class Config:
        from_attributes = True


class ClientCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    height_cm: Optional[float] = Field(None, gt=50, le=272)
    current_weight_kg: Optional[float] = Field(None, ge=10, le=500)
    target_weight_kg: Optional[float] = Field(None, ge=10, le=500)
    activity_level: Optional[ActivityLevel] = None
    dietary_preferences: list[str] = []
    allergies: list[str] = []
    medical_conditions: list[str] = []
    medications: list[str] = []
    health_notes: Optional[str] = None
    primary_dietitian_id: Optional[str] = None
    referral_code: Optional[str] = Field(None, max_length=10)
    referral_source: Optional[ReferralSource] = None


class ClientUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    height_cm: Optional[float] = Field(None, gt=50, le=272)
    current_weight_kg: Optional[float] = Field(None, ge=10, le=500)
    target_weight_kg: Optional[float] = Field(None, ge=10, le=500)
    activity_level: Optional[ActivityLevel] = None
    dietary_preferences: Optional[list[str]] = None
    allergies: Optional[list[str]] = None
    medical_conditions: Optional[list[str]] = None
    medications: Optional[list[str]] = None
    health_notes: Optional[str] = None
    primary_dietitian_id: Optional[str] = None
    onboarding_completed: Optional[bool] = None
    is_active: Optional[bool] = None


class ClientResponse(BaseModel):
    id: str
    org_id: str
    primary_dietitian_id: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    full_name: str
    profile_photo_url: Optional[str]
    date_of_birth: Optional[date]
    gender: Optional[Gender]
    height_cm: Optional[float]
    current_weight_kg: Optional[float]
    target_weight_kg: Optional[float]
    activity_level: Optional[ActivityLevel]
    dietary_preferences: Optional[list[str]]
    allergies: Optional[list[str]]
    medical_conditions: Optional[list[str]]
    medications: Optional[list[str]]
    health_notes: Optional[str]
    referral_code: Optional[str]
    referred_by_client_id: Optional[str]
    referral_source: Optional[ReferralSource]
    onboarding_completed: bool
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    primary_dietitian: Optional[DietitianSummary] = None

    class Config:
        from_attributes = True


class ClientProfile(BaseModel):
    """What the mobile app sees about the signed-in client."""
    id: str
    org_id: str
    full_name: str
    email: Optional[str]
    phone: Optional[str]
    profile_photo_url: Optional[str]
    height_cm: Optional[float]
    current_weight_kg: Optional[float]
    target_weight_kg: Optional[float]
    onboarding_completed: bool
    referral_code: Optional[str]
    primary_dietitian: Optional[DietitianSummary] = None

    class Config:
        from_attributes = True


class ClientProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    profile_photo_url: Optional[str] = None


# Weight log schemas
class WeightLogCreate(BaseModel):
    weight_kg: float = Field(..., ge=10, le=500)
    log_date: Optional[date] = None
    notes: Optional[str] = None
    progress_photo_url: Optional[str] = None


class WeightLogResponse(BaseModel):
    id: str
    client_id: str
    weight_kg: float
    log_date: date
    notes: Optional[str]
    progress_photo_url: Optional[str]
    bmi: Optional[float]
    weight_change_from_previous: Optional[float]
    is_outlier: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class WeightSummary(BaseModel):
    start_weight_kg: Optional[float] = None
    end_weight_kg: Optional[float] = None
    total_weight_loss_kg: Optional[float] = None
    average_loss_per_week_kg: Optional[float] = None


class WeightLogPage(Page[WeightLogResponse]):
    summary: WeightSummary


# Food item schemas
class FoodItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=50)
    serving_size_g: float = Field(100, gt=0)
    calories: float = Field(..., ge=0)
    protein_g: Optional[float] = Field(None, ge=0)
    carbs_g: Optional[float] = Field(None, ge=0)
    fats_g: Optional[float] = Field(None, ge=0)
    fiber_g: Optional[float] = Field(None, ge=0)
    sodium_mg: Optional[float] = Field(None, ge=0)
    sugar_g: Optional[float] = Field(None, ge=0)
    allergen_flags: list[str] = []
    dietary_tags: list[str] = []


class FoodItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=50)
    serving_size_g: Optional[float] = Field(None, gt=0)
    calories: Optional[float] = Field(None, ge=0)
    protein_g: Optional[float] = Field(None, ge=0)
    carbs_g: Optional[float] = Field(None, ge=0)
    fats_g: Optional[float] = Field(None, ge=0)
    fiber_g: Optional[float] = Field(None, ge=0)
    sodium_mg: Optional[float] = Field(None, ge=0)
    sugar_g: Optional[float] = Field(None, ge=0)
    allergen_flags: Optional[list[str]] = None
    dietary_tags: Optional[list[str]] = None


class FoodItemResponse(BaseModel):
    id: str
    org_id: Optional[str]
    name: str
    brand: Optional[str]
    category: Optional[str]
    serving_size_g: Optional[float]
    calories: float
    protein_g: Optional[float]
    carbs_g: Optional[float]
    fats_g: Optional[float]
    fiber_g: Optional[float]
    sodium_mg: Optional[float]
    sugar_g: Optional[float]
    allergen_flags: Optional[list[str]]
    dietary_tags: Optional[list[str]]
    is_verified: bool

    class Config:
        from_attributes = True


# Meal and diet plan schemas
class MealFoodItemCreate(BaseModel):
    food_id: str
    quantity_g: float = Field(..., gt=0, le=5000)
    option_group: int = Field(0, ge=0, le=10)
    option_label: Optional[str] = Field(None, max_length=50)
    sort_order: int = 0
    notes: Optional[str] = None


class MealFoodItemUpdate(BaseModel):
    quantity_g: Optional[float] = Field(None, gt=0, le=5000)
    option_group: Optional[int] = Field(None, ge=0, le=10)
    option_label: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = None
    notes: Optional[str] = None


class FoodItemBrief(BaseModel):
    id: str
    name: str
    serving_size_g: Optional[float]
    calories: float

    class Config:
        from_attributes = True


class MealFoodItemResponse(BaseModel):
    id: str
    food_id: str
    quantity_g: float
    option_group: int
    option_label: Optional[str]
    calories: Optional[int]
    protein_g: Optional[float]
    carbs_g: Optional[float]
    fats_g: Optional[float]
    sort_order: int
    notes: Optional[str]
    food_item: Optional[FoodItemBrief] = None

    class Config:
        from_attributes = True


class MealIn(BaseModel):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    meal_date: Optional[date] = None
    sequence_number: int = 0
    meal_type: MealType
    time_of_day: Optional[str] = Field(None, pattern=TIME_PATTERN)
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    food_items: list[MealFoodItemCreate] = []


class MealCreate(MealIn):
    plan_id: str


class MealUpdate(BaseModel):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    meal_date: Optional[date] = None
    sequence_number: Optional[int] = None
    meal_type: Optional[MealType] = None
    time_of_day: Optional[str] = Field(None, pattern=TIME_PATTERN)
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None


class MealResponse(BaseModel):
    id: str
    plan_id: str
    day_of_week: Optional[int]
    meal_date: Optional[date]
    sequence_number: int
    meal_type: MealType
    time_of_day: Optional[str]
    name: Optional[str]
    description: Optional[str]
    instructions: Optional[str]
    total_calories: Optional[int]
    total_protein_g: Optional[float]
    total_carbs_g: Optional[float]
    total_fats_g: Optional[float]
    food_items: list[MealFoodItemResponse] = []

    class Config:
        from_attributes = True


class DietPlanCreate(BaseModel):
    client_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    target_calories: Optional[int] = Field(None, gt=0, le=10000)
    target_protein_g: Optional[float] = Field(None, ge=0)
    target_carbs_g: Optional[float] = Field(None, ge=0)
    target_fats_g: Optional[float] = Field(None, ge=0)
    notes_for_client: Optional[str] = None
    internal_notes: Optional[str] = None
    is_template: bool = False
    template_category: Optional[str] = Field(None, max_length=50)
    meals: list[MealIn] = []


class DietPlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    target_calories: Optional[int] = Field(None, gt=0, le=10000)
    target_protein_g: Optional[float] = Field(None, ge=0)
    target_carbs_g: Optional[float] = Field(None, ge=0)
    target_fats_g: Optional[float] = Field(None, ge=0)
    notes_for_client: Optional[str] = None
    internal_notes: Optional[str] = None
    status: Optional[PlanStatus] = None
    template_category: Optional[str] = Field(None, max_length=50)


class DietPlanResponse(BaseModel):
    id: str
    org_id: str
    client_id: Optional[str]
    created_by: str
    name: str
    description: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    target_calories: Optional[int]
    target_protein_g: Optional[float]
    target_carbs_g: Optional[float]
    target_fats_g: Optional[float]
    notes_for_client: Optional[str]
    internal_notes: Optional[str]
    status: PlanStatus
    is_template: bool
    template_category: Optional[str]
    published_at: Optional[datetime]
    created_at: Optional[datetime]
    meal_count: int = 0

    class Config:
        from_attributes = True


class DietPlanDetail(DietPlanResponse):
    client_name: Optional[str] = None
    meals: list[MealResponse] = []


class AssignTemplateRequest(BaseModel):
    client_id: str
    start_date: date
    end_date: Optional[date] = None
    name: Optional[str] = Field(None, max_length=255)


class EmailPlanResponse(BaseModel):
    sent: bool
    recipient: str


# Meal log schemas
class MealLogCreate(BaseModel):
    client_id: str
    meal_id: str
    scheduled_date: date
    scheduled_time: Optional[str] = Field(None, pattern=TIME_PATTERN)


class MealLogUpdate(BaseModel):
    status: Optional[MealLogStatus] = None
    client_notes: Optional[str] = None
    substitute_description: Optional[str] = None
    substitute_calories_est: Optional[int] = Field(None, ge=0, le=10000)
    chosen_option_group: Optional[int] = Field(None, ge=0, le=10)
    meal_photo_url: Optional[str] = None


class MealLogReview(BaseModel):
    dietitian_feedback: str = Field(..., min_length=1)
    status: Optional[MealLogStatus] = None
    override_calories: Optional[int] = Field(None, ge=0, le=10000)


class MealLogResponse(BaseModel):
    id: str
    org_id: str
    client_id: str
    meal_id: str
    scheduled_date: date
    scheduled_time: Optional[str]
    status: MealLogStatus
    chosen_option_group: Optional[int]
    meal_photo_url: Optional[str]
    photo_uploaded_at: Optional[datetime]
    client_notes: Optional[str]
    dietitian_feedback: Optional[str]
    dietitian_feedback_at: Optional[datetime]
    reviewed_by: Optional[str]
    substitute_description: Optional[str]
    substitute_calories_est: Optional[int]
    logged_at: Optional[datetime]
    compliance_score: Optional[int]
    compliance_color: Optional[ComplianceColor]
    compliance_issues: Optional[list[str]]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class MealOption(BaseModel):
    option_group: int
    label: Optional[str]
    calories: int
    protein_g: Optional[float]
    carbs_g: Optional[float]
    fats_g: Optional[float]
    items: list[MealFoodItemResponse]


class MealLogDetail(MealLogResponse):
    client_name: Optional[str] = None
    meal_type: Optional[MealType] = None
    meal_name: Optional[str] = None
    time_of_day: Optional[str] = None
    options: list[MealOption] = []


# Compliance schemas
class MealComplianceResponse(BaseModel):
    meal_log_id: str
    score: int
    color: ComplianceColor
    issues: list[str]


class MealBreakdown(BaseModel):
    meal_log_id: str
    meal_name: Optional[str] = None
    meal_type: Optional[MealType]
    status: MealLogStatus
    score: Optional[int]
    color: Optional[ComplianceColor]
    issues: list[str] = []


class DailyAdherence(BaseModel):
    date: date
    score: int
    color: ComplianceColor
    meals_planned: int
    meals_logged: int
    meal_breakdown: list[MealBreakdown] = []


class WeeklyAdherence(BaseModel):
    week_start: date
    week_end: date
    average_score: int
    color: ComplianceColor
    trend: str
    previous_week_average: Optional[int]
    days: list[DailyAdherence]


class HistoryDay(BaseModel):
    date: date
    score: int
    color: ComplianceColor
    meals_scored: int


class ComplianceHistory(BaseModel):
    days: int
    average_score: int
    best_day: Optional[HistoryDay]
    worst_day: Optional[HistoryDay]
    history: list[HistoryDay]


# Client auth schemas
class OtpRequest(BaseModel):
    phone: str = Field(..., max_length=20)

    @field_validator("phone")
    @classmethod
    def strip_phone(cls, v: str) -> str:
        return v.strip()


class OtpRequestResponse(BaseModel):
    success: bool = True
    message: str
    expires_in: int
    dev_otp: Optional[str] = None


class OtpVerifyRequest(OtpRequest):
    phone: str = Field(..., min_length=1, max_length=20)
    otp: str = Field(..., min_length=1, max_length=10)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class RefreshResponse(BaseModel):
    token: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenResponse(RefreshResponse):
    client: ClientProfile


# Client app schemas
class TodayFoodItem(BaseModel):
    id: str
    food_id: str
    name: str
    quantity_g: float
    option_group: int
    option_label: Optional[str]
    calories: Optional[int]


class TodayMeal(BaseModel):
    meal_log_id: str
    meal_id: str
    meal_type: MealType
    time_of_day: Optional[str]
    name: Optional[str]
    description: Optional[str]
    instructions: Optional[str]
    status: MealLogStatus
    chosen_option_group: int = 0
    meal_photo_url: Optional[str] = None
    logged_at: Optional[datetime] = None
    compliance_score: Optional[int] = None
    compliance_color: Optional[ComplianceColor] = None
    dietitian_feedback: Optional[str] = None
    total_calories: int = 0
    total_protein_g: Optional[float] = None
    total_carbs_g: Optional[float] = None
    total_fats_g: Optional[float] = None
    food_items: list[TodayFoodItem] = []


class TodayMealsResponse(BaseModel):
    date: date
    plan_id: Optional[str]
    plan_name: Optional[str]
    meals: list[TodayMeal]


class ClientMealLogRequest(BaseModel):
    status: MealLogStatus
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    chosen_option_group: Optional[int] = Field(None, ge=0, le=10)
    substitute_description: Optional[str] = None
    substitute_calories_est: Optional[int] = Field(None, ge=0, le=10000)

    @field_validator("status")
    @classmethod
    def not_pending(cls, v: MealLogStatus) -> MealLogStatus:
        if v == MealLogStatus.PENDING:
            raise ValueError("Status must be eaten, skipped or substituted")
        return v


class ClientStats(BaseModel):
    weekly_adherence: int
    weight_trend: str
    latest_weight_kg: Optional[float]
    target_weight_kg: Optional[float]
    current_streak: int


class ReportUploadUrlRequest(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., max_length=20)


class ReportUploadUrlResponse(BaseModel):
    upload_url: str
    object_key: str
    file_url: str
    expires_in: int


class ReportDownloadUrlResponse(BaseModel):
    download_url: str
    expires_in: int


class ReportCreate(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    object_key: str = Field(..., min_length=1)
    file_type: str = Field(..., max_length=20)
    report_type: str = Field("other", max_length=50)
    notes: Optional[str] = None


class ReportResponse(BaseModel):
    id: str
    file_name: str
    file_url: str
    file_type: str
    report_type: Optional[str]
    notes: Optional[str]
    uploaded_at: Optional[datetime]

    class Config:
        from_attributes = True


# Notification schemas
class NotificationResponse(BaseModel):
    id: str
    category: str
    title: str
    message: str
    related_entity_type: Optional[str]
    related_entity_id: Optional[str]
    action_url: Optional[str]
    is_read: bool
    read_at: Optional[datetime]
    delivery_status: DeliveryStatus
    sent_at: Optional[datetime]

    class Config:
        from_attributes = True


# Referral schemas
class ReferralCodeResponse(BaseModel):
    referral_code: str
    share_message: str
    whatsapp_link: str


class ReferredClient(BaseModel):
    id: str
    full_name: str
    joined_at: Optional[datetime]


class ReferralStats(BaseModel):
    referral_code: Optional[str]
    referral_count: int
    free_months_earned: int
    free_months_used: int
    free_months_available: int
    referrals_until_next_reward: int
    referred_clients: list[ReferredClient]


class ReferralValidation(BaseModel):
    valid: bool
    referrer_name: Optional[str] = None


class TopReferrer(BaseModel):
    client_id: str
    full_name: str
    referral_code: Optional[str]
    referral_count: int
    free_months_earned: int


class OrgReferralStats(BaseModel):
    total_clients_with_codes: int
    total_referred_clients: int
    total_referrals: int
    total_free_months_earned: int
    total_free_months_used: int
    source_breakdown: dict[str, int]
    top_referrers: list[TopReferrer]


class ClientReferralSummary(BaseModel):
    id: str
    full_name: str
    email: Optional[str]
    phone: Optional[str]
    referral_code: Optional[str]
    referral_source: Optional[ReferralSource]
    referred_by_name: Optional[str]
    referral_count: int
    free_months_earned: int
    free_months_used: int
    free_months_available: int


class RedeemResponse(BaseModel):
    client_id: str
    free_months_used: int
    free_months_available: int


# Dashboard schemas
class DayAdherence(BaseModel):
    day: str
    date: date
    adherence: int
    total: int


class RecentClient(BaseModel):
    id: str
    full_name: str
    updated_at: Optional[datetime]


class PendingMealLog(BaseModel):
    id: str
    client_id: str
    client_name: str
    meal_type: Optional[MealType]
    scheduled_date: date
    status: MealLogStatus


class DashboardStats(BaseModel):
    total_clients: int
    pending_reviews: int
    active_plans: int
    adherence_rate_30d: int
    weekly_adherence: list[DayAdherence]
    recent_clients: list[RecentClient]
    pending_meal_logs: list[PendingMealLog]
