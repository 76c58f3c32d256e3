"""
Catalog service.
Manages a seller company's TradingView connection and indicator catalog.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ..extensions import db
from ..models import Connection, Indicator
from ..utils.exceptions import NotFoundError, ValidationError
from ..utils.validation import text_field
from .tradingview_client import TradingViewClient, ProbeResult

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for connection and indicator operations of one company."""

    def __init__(self, company_id: str):
        self.company_id = company_id

    # ==================== CONNECTION ====================

    def get_connection(self) -> Optional[Connection]:
        return Connection.query.filter_by(company_id=self.company_id).first()

    def require_connection(self) -> Connection:
        connection = self.get_connection()
        if not connection:
            raise NotFoundError('Connection', message='TradingView account not connected')
        return connection

    def upsert_connection(self, session_id: str, session_id_sign: str) -> Connection:
        """
        Create or update the company's connection.

        One row per company: reconnecting replaces the stored cookies.
        """
        connection = self.get_connection()
        if connection:
            connection.session_id = session_id
            connection.session_id_sign = session_id_sign
        else:
            connection = Connection(
                company_id=self.company_id,
                session_id=session_id,
                session_id_sign=session_id_sign
            )
            db.session.add(connection)

        connection.last_verified_at = datetime.utcnow()
        db.session.commit()
        return connection

    def connect(
        self,
        session_id: str,
        session_id_sign: str,
        client: TradingViewClient
    ) -> Tuple[Connection, List[Indicator], ProbeResult]:
        """
        Verify cookies, store the connection and import indicators.

        Raises:
            ValidationError: If TradingView rejects the cookies
        """
        message = 'sessionId and sessionIdSign are required'
        session_id = text_field(session_id, 'sessionId', message=message)
        session_id_sign = text_field(session_id_sign, 'sessionIdSign', message=message)

        if not client.verify_connection():
            raise ValidationError('Invalid TradingView credentials. Please check your cookies.')

        connection = self.upsert_connection(session_id, session_id_sign)
        logger.info(f'TradingView connected for company {self.company_id}')

        indicators, probe = self.import_indicators(connection, client)
        return connection, indicators, probe

    def disconnect(self) -> None:
        """Delete the connection with its indicators and their grants."""
        connection = self.require_connection()
        db.session.delete(connection)
        db.session.commit()
        logger.info(f'TradingView disconnected for company {self.company_id}')

    # ==================== INDICATORS ====================

    def list_indicators(self) -> List[Indicator]:
        connection = self.require_connection()
        return connection.indicators.order_by(Indicator.name.asc()).all()

    def upsert_indicator(
        self,
        connection: Connection,
        tradingview_id: str,
        name: str,
        script_id: str = None,
        source: str = 'import'
    ) -> Indicator:
        """
        Create or update an indicator keyed by (connection, tradingview_id).

        An existing attachment (experience_id) is preserved.
        """
        indicator = Indicator.query.filter_by(
            connection_id=connection.id,
            tradingview_id=tradingview_id
        ).first()

        if indicator:
            indicator.name = name
            if script_id:
                indicator.script_id = script_id
        else:
            indicator = Indicator(
                connection_id=connection.id,
                company_id=self.company_id,
                tradingview_id=tradingview_id,
                name=name,
                script_id=script_id,
                source=source
            )
            db.session.add(indicator)

        db.session.flush()
        return indicator

    def import_indicators(
        self,
        connection: Connection,
        client: TradingViewClient
    ) -> Tuple[List[Indicator], ProbeResult]:
        """
        Pull the seller's scripts from TradingView and upsert them.

        An empty probe result means the listing is unknown, so nothing
        existing is removed.
        """
        probe = client.get_indicators_detailed()

        imported = []
        for item in probe.value or []:
            imported.append(self.upsert_indicator(
                connection,
                tradingview_id=item['id'],
                name=item['name'],
                script_id=item.get('scriptId'),
                source='import'
            ))

        db.session.commit()
        logger.info(f'Imported {len(imported)} indicators for company {self.company_id}')
        return imported, probe

    def add_manual_indicator(self, tradingview_id: str, name: str, script_id: str = None) -> Indicator:
        """Manual entry fallback for when the listing endpoints return nothing."""
        tradingview_id = text_field(tradingview_id, 'tradingViewId')
        name = text_field(name, 'name', required=False)
        script_id = text_field(script_id, 'scriptId', required=False)

        connection = self.require_connection()
        indicator = self.upsert_indicator(
            connection,
            tradingview_id=tradingview_id,
            name=name or tradingview_id,
            script_id=script_id or tradingview_id,
            source='manual'
        )
        db.session.commit()
        return indicator

    def get_indicator(self, indicator_id: int) -> Indicator:
        indicator = Indicator.query.filter_by(
            id=indicator_id,
            company_id=self.company_id
        ).first()
        if not indicator:
            raise NotFoundError('Indicator', indicator_id, message='Indicator not found')
        return indicator

    def attach(self, indicator_id: int, experience_id: str) -> Indicator:
        """Attach an indicator to a Whop product or experience."""
        experience_id = text_field(experience_id, 'experienceId')

        indicator = self.get_indicator(indicator_id)
        indicator.experience_id = experience_id
        db.session.commit()

        logger.info(f'Indicator {indicator.id} attached to {experience_id}')
        return indicator

    def find_attached(self, experience_id: str) -> Optional[Indicator]:
        return Indicator.query.filter_by(
            experience_id=experience_id,
            company_id=self.company_id
        ).first()

    def available_indicators(self, connection: Connection) -> List[Indicator]:
        """Indicators not yet attached to anything."""
        return Indicator.query.filter_by(
            connection_id=connection.id,
            company_id=self.company_id,
            experience_id=None
        ).order_by(Indicator.name.asc()).all()
