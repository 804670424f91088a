"""Database models and setup"""
import datetime
import uuid
from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from hvut.config import Config

# Database setup
engine_options = {"echo": False}
if Config.DATABASE_URL.startswith("sqlite"):
    engine_options["connect_args"] = {"check_same_thread": False}
    if Config.DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection so every session sees the same in-memory database
        engine_options["poolclass"] = StaticPool

engine = create_engine(Config.DATABASE_URL, **engine_options)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def _new_id():
    return uuid.uuid4().hex


class Filing(Base):
    """Filing or draft record: the intent and vehicles are canonical, pricing is a cached view"""
    __tablename__ = 'filings'

    id = Column(String(32), primary_key=True, default=_new_id)
    user_uid = Column(String, index=True)
    status = Column(String, default='draft', index=True)  # draft, submitted, processing, action_required, completed
    filing_type = Column(String, index=True)  # standard, amendment, refund
    amendment_type = Column(String, nullable=True)
    tax_year = Column(Integer)
    business_id = Column(String, nullable=True)
    workflow_type = Column(String, default='manual')  # manual or upload
    intent_data = Column(Text)  # JSON filing intent
    vehicles_data = Column(Text)  # JSON vehicle list
    pricing_data = Column(Text, nullable=True)  # JSON PricingBreakdown
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)


class PaymentIntent(Base):
    """Model for tracking payment intents and their usage"""
    __tablename__ = 'payment_intents'

    id = Column(Integer, primary_key=True, index=True)
    payment_intent_id = Column(String, unique=True, index=True)  # Stripe payment intent ID or dev mode ID
    user_uid = Column(String, index=True)
    filing_id = Column(String(32), index=True, nullable=True)
    amount_cents = Column(Integer)  # grand_total in cents
    status = Column(String)  # 'succeeded', 'pending', 'failed'
    used_for_submission = Column(String, default='false')
    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)


def init_database():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)


def test_database_connection():
    """Test database connectivity"""
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        return True, "Database connection successful"
    except Exception as e:
        return False, f"Database connection failed: {e}"
