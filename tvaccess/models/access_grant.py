"""
Buyer access grant model.
"""
from datetime import datetime
from ..extensions import db


class AccessGrant(db.Model):
    """
    One buyer's access to one indicator.

    Rows are reactivated on repeat grants and marked inactive on revoke;
    they are never deleted. is_active reflects the last host call we believe
    succeeded, not a confirmed host state.
    """
    __tablename__ = 'user_indicator_access'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(100), nullable=False, index=True)
    indicator_id = db.Column(
        db.Integer,
        db.ForeignKey('tradingview_indicators.id', ondelete='CASCADE'),
        nullable=False
    )

    tradingview_username = db.Column(db.String(255), nullable=False)
    membership_id = db.Column(db.String(100), index=True)

    is_active = db.Column(db.Boolean, default=False, nullable=False)
    revoked_at = db.Column(db.DateTime)

    # Last host-side failure, kept for operators
    last_error = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'indicator_id', name='uq_user_indicator'),
    )

    def __repr__(self):
        return f'<AccessGrant user={self.user_id} indicator={self.indicator_id} active={self.is_active}>'

    def mark_active(self, membership_id: str = None):
        self.is_active = True
        self.revoked_at = None
        self.last_error = None
        if membership_id:
            self.membership_id = membership_id

    def mark_revoked(self, error: str = None):
        self.is_active = False
        self.revoked_at = datetime.utcnow()
        self.last_error = error

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'indicatorId': self.indicator_id,
            'tradingViewUsername': self.tradingview_username,
            'membershipId': self.membership_id,
            'isActive': self.is_active,
            'revokedAt': self.revoked_at.isoformat() if self.revoked_at else None,
            'lastError': self.last_error,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
