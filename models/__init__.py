from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import AuthSession
from .advisor import Advisor
from .time_slot import TimeSlot
from .booking import Booking
from .payment import Payment
from .health_score import HealthScoreSubmission
