"""
TradingView client using cookie-based authentication.

TradingView has no public API for invite-only scripts. Every operation here is
an ordered list of candidate internal endpoints; the first one that answers
successfully wins. Each try is recorded as an Attempt so callers can surface
the diagnostic trail instead of a bare True/False.
"""
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://www.tradingview.com'
USER_AGENT = 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36'


@dataclass
class Strategy:
    """One candidate endpoint for an operation."""
    name: str
    method: str
    path: str
    ok_statuses: tuple = (200,)
    params: Optional[Dict[str, Any]] = None
    body: Optional[Dict[str, Any]] = None


@dataclass
class Attempt:
    """Outcome of trying a single strategy."""
    strategy: str
    method: str
    path: str
    status_code: Optional[int] = None
    ok: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProbeResult:
    """Outcome of an operation across all strategies tried."""
    success: bool
    attempts: List[Attempt] = field(default_factory=list)
    value: Any = None

    @property
    def errors(self) -> List[str]:
        return [a.error for a in self.attempts if a.error]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'attempts': [a.to_dict() for a in self.attempts],
        }


def normalize_indicators(body: Any) -> List[Dict[str, Any]]:
    """
    Normalize a script listing into [{id, name, scriptId}].

    The listing may sit under 'results', 'data' or 'scripts', or be the body
    itself. Items without any usable id are dropped.
    """
    if isinstance(body, dict):
        items = body.get('results') or body.get('data') or body.get('scripts') or []
    else:
        items = body

    if not isinstance(items, list):
        return []

    indicators = []
    for script in items:
        if not isinstance(script, dict):
            continue

        primary_id = _first_present(script, 'id', 'script_id', 'pine_id')
        script_id = _first_present(script, 'script_id', 'id', 'pine_id')
        if primary_id is None:
            continue

        indicators.append({
            'id': str(primary_id),
            'name': script.get('name') or script.get('script_name') or script.get('title') or 'Unnamed Indicator',
            'scriptId': str(script_id) if script_id is not None else None,
        })

    return indicators


def _first_present(data: Dict[str, Any], *keys):
    for key in keys:
        value = data.get(key)
        if value is not None and value != '':
            return value
    return None


class TradingViewClient:
    """
    Client for TradingView's internal script-sharing endpoints.

    Supports:
    - Listing the seller's scripts (best effort, may return empty)
    - Granting and revoking a user's access to an invite-only script
    - Verifying that the session cookies are still valid
    """

    LIST_PATHS = (
        '/pine_facade/list/',
        '/u/scripts/',
        '/api/v1/user/scripts/',
    )

    def __init__(
        self,
        session_id: str,
        session_id_sign: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        self.session_id = session_id
        self.session_id_sign = session_id_sign
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'Cookie': f'sessionid={session_id}; sessionid_sign={session_id_sign}',
            'User-Agent': USER_AGENT,
            'Referer': self.base_url,
        })

    # ==================== STRATEGY RUNNER ====================

    def _attempt(self, strategy: Strategy) -> tuple:
        """Execute one strategy. Returns (Attempt, parsed body or None)."""
        attempt = Attempt(strategy=strategy.name, method=strategy.method, path=strategy.path)
        body = None

        try:
            response = self.session.request(
                strategy.method,
                f'{self.base_url}{strategy.path}',
                params=strategy.params,
                json=strategy.body,
                timeout=self.timeout
            )
            attempt.status_code = response.status_code
            attempt.ok = response.status_code in strategy.ok_statuses

            try:
                body = response.json()
            except ValueError:
                body = None

            if not attempt.ok:
                detail = body if body is not None else (response.text or '')[:200]
                attempt.error = f'{strategy.name} returned status {response.status_code}: {detail}'

        except requests.exceptions.RequestException as e:
            attempt.error = f'{strategy.name} error: {e}'

        logger.info(
            f'TradingView {strategy.name} attempt: {"ok" if attempt.ok else "failed"}',
            extra={'attempt': attempt.to_dict()}
        )
        return attempt, body

    def _run(
        self,
        strategies: List[Strategy],
        accept: Optional[Callable[[Any], Any]] = None
    ) -> ProbeResult:
        """
        Try strategies in order until one succeeds.

        Args:
            strategies: Ordered candidates
            accept: Optional hook turning a successful body into a value; a
                falsy return means "keep looking" (e.g. an empty listing)
        """
        result = ProbeResult(success=False)

        for strategy in strategies:
            attempt, body = self._attempt(strategy)
            result.attempts.append(attempt)

            if not attempt.ok:
                continue

            if accept is None:
                result.success = True
                return result

            value = accept(body)
            if value:
                result.success = True
                result.value = value
                return result

            attempt.ok = False
            attempt.error = f'{strategy.name} returned no usable data'

        return result

    # ==================== INDICATORS ====================

    def get_indicators_detailed(self) -> ProbeResult:
        """List the seller's scripts with the full attempt trail."""
        strategies = [
            Strategy(
                name=f'list:{path}',
                method='GET',
                path=path,
                params={'order': 'created', 'limit': 100},
            )
            for path in self.LIST_PATHS
        ]

        result = self._run(strategies, accept=normalize_indicators)
        if not result.success:
            result.value = []
            logger.warning(
                'Could not fetch indicators from TradingView, manual entry required',
                extra={'attempts': [a.to_dict() for a in result.attempts]}
            )
        return result

    def get_indicators(self) -> List[Dict[str, Any]]:
        """
        List the seller's scripts as [{id, name, scriptId}].

        An empty list means "unknown", not "no indicators".
        """
        return self.get_indicators_detailed().value or []

    # ==================== ACCESS ====================

    def grant_access_detailed(self, indicator_id: str, username: str) -> ProbeResult:
        """Grant a user access to a script: share, then invite."""
        strategies = [
            Strategy(
                name='share',
                method='POST',
                path=f'/pine_facade/script/{indicator_id}/share/',
                ok_statuses=(200, 201),
                body={'username': username, 'access_type': 'view'},
            ),
            Strategy(
                name='invite',
                method='POST',
                path=f'/pine_facade/script/{indicator_id}/invite/',
                ok_statuses=(200, 201),
                body={'username': username},
            ),
        ]

        result = self._run(strategies)
        if not result.success:
            logger.error(
                f'All TradingView access methods failed for {username} on {indicator_id}',
                extra={'errors': result.errors}
            )
        return result

    def grant_access(self, indicator_id: str, username: str) -> bool:
        """Grant access. True if any strategy succeeded."""
        return self.grant_access_detailed(indicator_id, username).success

    def revoke_access_detailed(self, indicator_id: str, username: str) -> ProbeResult:
        """Revoke a user's access: share delete, then remove_access."""
        strategies = [
            Strategy(
                name='share_delete',
                method='DELETE',
                path=f'/pine_facade/script/{indicator_id}/share/',
                ok_statuses=(200, 204),
                body={'username': username},
            ),
            Strategy(
                name='remove_access',
                method='POST',
                path=f'/pine_facade/script/{indicator_id}/remove_access/',
                ok_statuses=(200, 204),
                body={'username': username},
            ),
        ]

        result = self._run(strategies)
        if not result.success:
            logger.error(
                f'All TradingView revoke methods failed for {username} on {indicator_id}',
                extra={'errors': result.errors}
            )
        return result

    def revoke_access(self, indicator_id: str, username: str) -> bool:
        """Revoke access. True if any strategy succeeded."""
        return self.revoke_access_detailed(indicator_id, username).success

    # ==================== CONNECTION ====================

    def verify_connection(self) -> bool:
        """Check that the session cookies are still accepted."""
        attempt, _ = self._attempt(Strategy(name='verify', method='GET', path='/u/'))
        return attempt.ok
