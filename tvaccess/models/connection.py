"""
TradingView connection model.
"""
from datetime import datetime
from ..extensions import db


class Connection(db.Model):
    """
    A seller company's TradingView session credentials.

    One row per company. Created on the first successful cookie verification,
    updated on reconnect, deleted on disconnect (indicators cascade).
    """
    __tablename__ = 'tradingview_connections'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.String(100), unique=True, nullable=False, index=True)

    # Browser session cookies (sessionid / sessionid_sign)
    session_id = db.Column(db.Text, nullable=False)
    session_id_sign = db.Column(db.Text, nullable=False)

    last_verified_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    indicators = db.relationship(
        'Indicator',
        backref='connection',
        lazy='dynamic',
        cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<Connection {self.company_id}>'

    def to_dict(self):
        # Cookies are never serialized
        return {
            'id': self.id,
            'companyId': self.company_id,
            'lastVerifiedAt': self.last_verified_at.isoformat() if self.last_verified_at else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
