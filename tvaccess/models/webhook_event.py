"""
Webhook event log model.
"""
from datetime import datetime
from ..extensions import db


class WebhookEvent(db.Model):
    """
    Append-only audit trail of inbound Whop webhooks.

    Not a queue: rows are never replayed and carry no ordering guarantee.
    """
    __tablename__ = 'webhook_events'

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(100), index=True)
    payload = db.Column(db.JSON)

    processed = db.Column(db.Boolean, default=False, nullable=False)
    error = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    processed_at = db.Column(db.DateTime)

    def __repr__(self):
        return f'<WebhookEvent {self.id} {self.event_type}>'

    def mark_processed(self, error: str = None):
        self.processed = True
        self.processed_at = datetime.utcnow()
        self.error = error

    def to_dict(self, include_payload=False):
        data = {
            'id': self.id,
            'eventType': self.event_type,
            'processed': self.processed,
            'error': self.error,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'processedAt': self.processed_at.isoformat() if self.processed_at else None,
        }
        if include_payload:
            data['payload'] = self.payload
        return data
