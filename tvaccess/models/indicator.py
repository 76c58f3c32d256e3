"""
TradingView indicator model.
"""
from datetime import datetime
from ..extensions import db


class Indicator(db.Model):
    """
    A sellable TradingView script in a company's catalog.

    experience_id holds the Whop product or experience id the seller attached
    the indicator to; it stays null until attached.
    """
    __tablename__ = 'tradingview_indicators'

    id = db.Column(db.Integer, primary_key=True)
    connection_id = db.Column(
        db.Integer,
        db.ForeignKey('tradingview_connections.id', ondelete='CASCADE'),
        nullable=False
    )
    company_id = db.Column(db.String(100), nullable=False, index=True)

    tradingview_id = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    script_id = db.Column(db.String(255))

    experience_id = db.Column(db.String(100), index=True)

    source = db.Column(db.String(20), default='import')  # import, manual

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Disconnecting a company removes its catalog and the grants that point at it
    grants = db.relationship(
        'AccessGrant',
        backref='indicator',
        lazy='dynamic',
        cascade='all, delete-orphan'
    )

    __table_args__ = (
        db.UniqueConstraint('connection_id', 'tradingview_id', name='uq_connection_tradingview_id'),
    )

    def __repr__(self):
        return f'<Indicator {self.tradingview_id} {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'connectionId': self.connection_id,
            'companyId': self.company_id,
            'tradingViewId': self.tradingview_id,
            'name': self.name,
            'scriptId': self.script_id,
            'experienceId': self.experience_id,
            'source': self.source,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
