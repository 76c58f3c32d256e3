"""
Whop API client.

Thin REST wrapper for membership, product, experience and company lookups
plus the owner/admin role check used to gate seller actions.

API Documentation: https://docs.whop.com/api-reference
"""
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = 'https://api.whop.com/api/v1'

ACTIVE_STATUSES = ('active', 'trialing')
ADMIN_ROLES = ('owner', 'admin')


class WhopAPIError(Exception):
    """Non-success response from the Whop API."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_permission_error(self) -> bool:
        return self.status_code in (401, 403)


def _nested_id(data: Dict[str, Any], nested_key: str, flat_key: str) -> str:
    """Read an id that may be nested ({'user': {'id': ..}}) or flat ('user_id')."""
    nested = data.get(nested_key)
    if isinstance(nested, dict) and nested.get('id'):
        return str(nested['id'])
    if isinstance(nested, str) and nested:
        return nested
    value = data.get(flat_key)
    return str(value) if value else ''


class WhopClient:
    """
    Client for the Whop REST API.

    Every lookup returns None (or False) on failure; errors are logged
    rather than raised, so one failed lookup never aborts a batch.
    """

    def __init__(
        self,
        api_key: str,
        app_id: str = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        if not api_key:
            logger.warning('WhopClient: No API key provided')

        self.api_key = api_key
        self.app_id = app_id
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Accept': 'application/json',
        }
        if self.app_id:
            headers['X-Whop-App-Id'] = self.app_id
        return headers

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        allow_list: bool = False
    ) -> Any:
        """
        GET a resource.

        Raises WhopAPIError on non-200 responses and on bodies that are not a
        JSON object (or a list, when allow_list is set).
        """
        response = self.session.get(
            f'{self.api_base}{path}',
            headers=self._get_headers(),
            params=params,
            timeout=self.timeout
        )

        if response.status_code != 200:
            raise WhopAPIError(
                f'GET {path} returned {response.status_code}: {response.text[:200]}',
                status_code=response.status_code
            )

        body = response.json()
        if not isinstance(body, dict) and not (allow_list and isinstance(body, list)):
            raise WhopAPIError(
                f'GET {path} returned unexpected body type {type(body).__name__}',
                status_code=response.status_code
            )
        return body

    def _safe_get(self, path: str, resource: str) -> Optional[Dict[str, Any]]:
        try:
            return self._get(path)
        except (WhopAPIError, requests.exceptions.RequestException, ValueError) as e:
            logger.error(f'Error fetching Whop {resource}: {e}')
            return None

    # ==================== LOOKUPS ====================

    def get_membership(self, membership_id: str) -> Optional[Dict[str, Any]]:
        """
        Get membership details.

        Returns:
            Dict with id, user_id, product_id, status, created_at, updated_at
            or None if the lookup failed
        """
        data = self._safe_get(f'/memberships/{membership_id}', 'membership')
        if data is None:
            return None

        return {
            'id': str(data.get('id') or membership_id),
            'user_id': _nested_id(data, 'user', 'user_id'),
            'product_id': _nested_id(data, 'product', 'product_id'),
            'company_id': _nested_id(data, 'company', 'company_id'),
            'status': data.get('status'),
            'created_at': data.get('created_at'),
            'updated_at': data.get('updated_at'),
        }

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Get product details including the ids of its experiences."""
        data = self._safe_get(f'/products/{product_id}', 'product')
        if data is None:
            return None

        experiences = data.get('experiences') or []
        if isinstance(experiences, dict):
            experiences = experiences.get('data') or []

        return {
            'id': str(data.get('id') or product_id),
            'name': data.get('title') or data.get('name') or '',
            'company_id': _nested_id(data, 'company', 'company_id'),
            'experience_ids': [str(e['id']) for e in experiences if isinstance(e, dict) and e.get('id')],
        }

    def get_experience(self, experience_id: str) -> Optional[Dict[str, Any]]:
        """Get experience details including owning company and products."""
        data = self._safe_get(f'/experiences/{experience_id}', 'experience')
        if data is None:
            return None

        products = data.get('products') or []
        return {
            'id': str(data.get('id') or experience_id),
            'name': data.get('name') or '',
            'company_id': _nested_id(data, 'company', 'company_id'),
            'product_ids': [str(p['id']) for p in products if isinstance(p, dict) and p.get('id')],
        }

    def get_company(self, company_id: str) -> Optional[Dict[str, Any]]:
        """Get raw company details, or None if the lookup failed."""
        return self._safe_get(f'/companies/{company_id}', 'company')

    def is_membership_active(self, membership: Optional[Dict[str, Any]]) -> bool:
        """Check if a membership currently entitles its user."""
        return bool(membership) and membership.get('status') in ACTIVE_STATUSES

    # ==================== ROLE CHECK ====================

    def _company_owner_matches(self, user_id: str, company_id: str) -> bool:
        """First lookup: compare the company's declared owner."""
        company = self._get(f'/companies/{company_id}')

        owner_id = (
            _nested_id(company, 'owner_user', 'owner_user_id')
            or _nested_id(company, 'owner', 'owner_id')
        )
        logger.info(f'[WhopClient] Company {company_id} owner: {owner_id or "unknown"}')
        return bool(owner_id) and owner_id == user_id

    def _authorized_user_roles(self, user_id: str, company_id: str) -> List[str]:
        """Second lookup: roles of the user in the company's authorized users."""
        body = self._get('/authorized_users', params={
            'company_id': company_id,
            'user_id': user_id,
        }, allow_list=True)

        entries = body.get('data', []) if isinstance(body, dict) else body
        roles = []
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            entry_user = _nested_id(entry, 'user', 'user_id')
            if entry_user != user_id:
                logger.debug(f'[WhopClient] User ID mismatch: expected {user_id}, got {entry_user}')
                continue
            roles.append(entry.get('role'))
        return roles

    def is_user_owner_or_admin(self, user_id: str, company_id: str) -> bool:
        """
        Check if a user is an owner or admin of a company.

        Tries the company's owner field first, then the authorized users
        list. Any failure falls through to the next lookup; if neither
        confirms the role the answer is False.
        """
        if not user_id or not company_id:
            return False

        logger.info(f'[WhopClient] Checking if user {user_id} is owner/admin of company {company_id}')

        try:
            if self._company_owner_matches(user_id, company_id):
                logger.info(f'[WhopClient] User {user_id} is the company owner')
                return True
        except WhopAPIError as e:
            if e.is_permission_error:
                logger.info(f'[WhopClient] Company owner not readable ({e.status_code}), trying authorized users')
            else:
                logger.warning(f'[WhopClient] Company lookup failed: {e}')
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f'[WhopClient] Company lookup error: {e}')

        try:
            roles = self._authorized_user_roles(user_id, company_id)
        except (WhopAPIError, requests.exceptions.RequestException, ValueError) as e:
            logger.error(f'[WhopClient] Error checking user role: {e}')
            return False

        if any(role in ADMIN_ROLES for role in roles):
            logger.info(f'[WhopClient] User {user_id} IS owner/admin')
            return True

        if roles:
            logger.info(f'[WhopClient] User {user_id} has roles {roles}, not owner/admin')
        else:
            logger.info(f'[WhopClient] User {user_id} not found in authorized users list')
        return False
