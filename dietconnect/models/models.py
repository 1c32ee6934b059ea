import enum
import uuid

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, Enum, ForeignKey, Date, DateTime,
    Text, JSON, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from dietconnect.core.database import Base, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    DIETITIAN = "dietitian"


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ActivityLevel(str, enum.Enum):
    SEDENTARY = "sedentary"
    LIGHTLY_ACTIVE = "lightly_active"
    MODERATELY_ACTIVE = "moderately_active"
    VERY_ACTIVE = "very_active"
    EXTRA_ACTIVE = "extra_active"


class ReferralSource(str, enum.Enum):
    REFERRAL = "referral"
    DIRECT = "direct"
    SOCIAL = "social"
    OTHER = "other"


class PlanStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class MealType(str, enum.Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    SNACK = "snack"
    DINNER = "dinner"


class MealLogStatus(str, enum.Enum):
    PENDING = "pending"
    EATEN = "eaten"
    SKIPPED = "skipped"
    SUBSTITUTED = "substituted"


class ComplianceColor(str, enum.Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class RecipientType(str, enum.Enum):
    USER = "user"
    CLIENT = "client"


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    website = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), default="India")
    timezone = Column(String(50), default="Asia/Kolkata")
    subscription_tier = Column(String(20), default="free")
    subscription_status = Column(String(20), default="active")
    max_clients = Column(Integer, default=50)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    users = relationship("User", back_populates="organization")
    clients = relationship("Client", back_populates="organization")


class User(Base):
    """A staff member (owner, admin or dietitian) signed in through the identity provider."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    idp_user_id = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.DIETITIAN)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    specialization = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    push_tokens = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    organization = relationship("Organization", back_populates="users")
    clients = relationship(
        "Client", back_populates="primary_dietitian", foreign_keys="Client.primary_dietitian_id"
    )


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    invited_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.DIETITIAN)
    token = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(Enum(InvitationStatus), default=InvitationStatus.PENDING)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    organization = relationship("Organization")
    inviter = relationship("User")


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    primary_dietitian_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    profile_photo_url = Column(Text, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(Enum(Gender), nullable=True)
    height_cm = Column(Float, nullable=True)
    current_weight_kg = Column(Float, nullable=True)
    target_weight_kg = Column(Float, nullable=True)
    activity_level = Column(Enum(ActivityLevel), nullable=True)
    dietary_preferences = Column(JSON, default=list)
    allergies = Column(JSON, default=list)
    medical_conditions = Column(JSON, default=list)
    medications = Column(JSON, default=list)
    health_notes = Column(Text, nullable=True)
    referral_code = Column(String(10), nullable=True, unique=True, index=True)
    referred_by_client_id = Column(String(36), ForeignKey("clients.id"), nullable=True)
    referral_source = Column(Enum(ReferralSource), nullable=True)
    onboarding_completed = Column(Boolean, default=False)
    push_tokens = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    organization = relationship("Organization", back_populates="clients")
    primary_dietitian = relationship(
        "User", back_populates="clients", foreign_keys=[primary_dietitian_id]
    )
    referred_by = relationship("Client", remote_side=[id], back_populates="referrals")
    referrals = relationship("Client", back_populates="referred_by")
    referral_benefit = relationship("ReferralBenefit", back_populates="client", uselist=False)
    diet_plans = relationship("DietPlan", back_populates="client")
    weight_logs = relationship("WeightLog", back_populates="client", order_by="WeightLog.log_date")


class ReferralBenefit(Base):
    __tablename__ = "referral_benefits"

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, unique=True)
    referral_count = Column(Integer, default=0)
    free_months_earned = Column(Integer, default=0)
    free_months_used = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client = relationship("Client", back_populates="referral_benefit")


class FoodItem(Base):
    """Food library entry. Nutrition values are per ``serving_size_g`` grams.

    Items without an organization belong to the shared global library.
    """
    __tablename__ = "food_items"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    brand = Column(String(255), nullable=True)
    category = Column(String(50), nullable=True)
    serving_size_g = Column(Float, default=100)
    calories = Column(Float, nullable=False)
    protein_g = Column(Float, nullable=True)
    carbs_g = Column(Float, nullable=True)
    fats_g = Column(Float, nullable=True)
    fiber_g = Column(Float, nullable=True)
    sodium_mg = Column(Float, nullable=True)
    sugar_g = Column(Float, nullable=True)
    allergen_flags = Column(JSON, default=list)
    dietary_tags = Column(JSON, default=list)
    is_verified = Column(Boolean, default=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    meal_food_items = relationship("MealFoodItem", back_populates="food_item")


class DietPlan(Base):
    __tablename__ = "diet_plans"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True, index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    target_calories = Column(Integer, nullable=True)
    target_protein_g = Column(Float, nullable=True)
    target_carbs_g = Column(Float, nullable=True)
    target_fats_g = Column(Float, nullable=True)
    notes_for_client = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    status = Column(Enum(PlanStatus), default=PlanStatus.DRAFT)
    is_template = Column(Boolean, default=False)
    template_category = Column(String(50), nullable=True)
    published_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client = relationship("Client", back_populates="diet_plans")
    creator = relationship("User")
    meals = relationship(
        "Meal",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by=lambda: [Meal.day_of_week, Meal.sequence_number],
    )


class Meal(Base):
    __tablename__ = "meals"

    id = Column(String(36), primary_key=True, default=new_id)
    plan_id = Column(String(36), ForeignKey("diet_plans.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=True)  # 0 = Monday, None = every day
    meal_date = Column(Date, nullable=True)
    sequence_number = Column(Integer, default=0)
    meal_type = Column(Enum(MealType), nullable=False)
    time_of_day = Column(String(5), nullable=True)  # HH:MM
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    total_calories = Column(Integer, nullable=True)
    total_protein_g = Column(Float, nullable=True)
    total_carbs_g = Column(Float, nullable=True)
    total_fats_g = Column(Float, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    plan = relationship("DietPlan", back_populates="meals")
    food_items = relationship(
        "MealFoodItem",
        back_populates="meal",
        cascade="all, delete-orphan",
        order_by=lambda: [MealFoodItem.option_group, MealFoodItem.sort_order],
    )
    logs = relationship("MealLog", back_populates="meal")


class MealFoodItem(Base):
    __tablename__ = "meal_food_items"

    id = Column(String(36), primary_key=True, default=new_id)
    meal_id = Column(String(36), ForeignKey("meals.id"), nullable=False, index=True)
    food_id = Column(String(36), ForeignKey("food_items.id"), nullable=False)
    quantity_g = Column(Float, nullable=False)
    option_group = Column(Integer, default=0)
    option_label = Column(String(50), nullable=True)
    calories = Column(Integer, nullable=True)
    protein_g = Column(Float, nullable=True)
    carbs_g = Column(Float, nullable=True)
    fats_g = Column(Float, nullable=True)
    sort_order = Column(Integer, default=0)
    notes = Column(Text, nullable=True)

    meal = relationship("Meal", back_populates="food_items")
    food_item = relationship("FoodItem", back_populates="meal_food_items")


class MealLog(Base):
    __tablename__ = "meal_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    meal_id = Column(String(36), ForeignKey("meals.id"), nullable=False)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(String(5), nullable=True)
    status = Column(Enum(MealLogStatus), default=MealLogStatus.PENDING)
    chosen_option_group = Column(Integer, default=0)
    meal_photo_url = Column(Text, nullable=True)
    photo_uploaded_at = Column(DateTime, nullable=True)
    client_notes = Column(Text, nullable=True)
    dietitian_feedback = Column(Text, nullable=True)
    dietitian_feedback_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    substitute_description = Column(Text, nullable=True)
    substitute_calories_est = Column(Integer, nullable=True)
    logged_at = Column(DateTime, nullable=True)
    compliance_score = Column(Integer, nullable=True)
    compliance_color = Column(Enum(ComplianceColor), nullable=True)
    compliance_issues = Column(JSON, default=list)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client = relationship("Client")
    meal = relationship("Meal", back_populates="logs")
    reviewer = relationship("User")


class WeightLog(Base):
    __tablename__ = "weight_logs"
    __table_args__ = (UniqueConstraint("client_id", "log_date", name="uq_weight_log_client_date"),)

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    weight_kg = Column(Float, nullable=False)
    log_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    progress_photo_url = Column(Text, nullable=True)
    bmi = Column(Float, nullable=True)
    weight_change_from_previous = Column(Float, nullable=True)
    is_outlier = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    client = relationship("Client", back_populates="weight_logs")


class OtpChallenge(Base):
    """Pending one-time password for a phone number. Only the digest is stored."""
    __tablename__ = "otp_challenges"

    id = Column(String(36), primary_key=True, default=new_id)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    code_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class ClientRefreshToken(Base):
    __tablename__ = "client_refresh_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    family_id = Column(String(36), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    replaced_by_id = Column(String(36), ForeignKey("client_refresh_tokens.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    client = relationship("Client")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    recipient_id = Column(String(36), nullable=False, index=True)
    recipient_type = Column(Enum(RecipientType), nullable=False)
    category = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(String(36), nullable=True)
    action_url = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime, nullable=True)
    delivery_status = Column(Enum(DeliveryStatus), default=DeliveryStatus.PENDING)
    sent_at = Column(DateTime, default=utcnow)


class ClientReport(Base):
    __tablename__ = "client_reports"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    object_key = Column(Text, nullable=False)
    file_url = Column(Text, nullable=False)
    file_type = Column(String(20), nullable=False)
    report_type = Column(String(50), default="other")
    notes = Column(Text, nullable=True)
    uploaded_at = Column(DateTime, default=utcnow)
