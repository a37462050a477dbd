from models.db import db
from utils.clock import utcnow, isoformat

class HealthScoreSubmission(db.Model):
    __tablename__ = "health_score_submissions"

    id = db.Column(db.Integer, primary_key=True)
    investor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    inputs = db.Column(db.JSON, nullable=False)
    score = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(20), nullable=False)
    risk_level = db.Column(db.String(10), nullable=False)
    breakdown = db.Column(db.JSON, nullable=False)
    recommendations = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "submission_id": self.id,
            "score": self.score,
            "category": self.category,
            "risk_level": self.risk_level,
            "breakdown": self.breakdown,
            "recommendations": self.recommendations,
            "created_at": isoformat(self.created_at),
        }
