"""
Whop user token authentication.

Whop injects a JWT identifying the viewing user into requests made from its
iframe. Identity providers turn that token into a WhopIdentity.

Trust boundary: the default UnverifiedTokenProvider only decodes the token.
It trusts that the header was set by Whop's proxy and is therefore only safe
behind it. When WHOP_TOKEN_SECRET is configured the SignedTokenProvider is
used instead and tokens with a bad signature are rejected.
"""
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional

import jwt
from flask import request, g, current_app

from ..services import get_services
from ..utils.errors import unauthorized, forbidden

logger = logging.getLogger(__name__)

TOKEN_HEADERS = ('x-whop-user-token', 'x-whop-token')
USER_ID_FIELDS = ('userId', 'user_id', 'sub')
COMPANY_ID_FIELDS = ('companyId', 'company_id')


@dataclass
class WhopIdentity:
    """Who is making the request."""
    user_id: str = ''
    company_id: str = ''
    email: Optional[str] = None
    iat: Optional[int] = None
    exp: Optional[int] = None


def _first_field(payload: dict, fields) -> str:
    for name in fields:
        value = payload.get(name)
        if value:
            return str(value)
    return ''


def identity_from_payload(payload) -> Optional[WhopIdentity]:
    """
    Map a decoded token payload to an identity.

    Returns None unless the payload is an object carrying a user id or a
    company id under one of the accepted field names.
    """
    if not isinstance(payload, dict):
        return None

    user_id = _first_field(payload, USER_ID_FIELDS)
    company_id = _first_field(payload, COMPANY_ID_FIELDS)

    if not user_id and not company_id:
        logger.info(f'[Auth] Token missing id fields, payload keys: {sorted(payload.keys())}')
        return None

    return WhopIdentity(
        user_id=user_id,
        company_id=company_id,
        email=payload.get('email'),
        iat=payload.get('iat'),
        exp=payload.get('exp'),
    )


class IdentityProvider:
    """Turns a raw bearer token into a WhopIdentity (or None)."""

    verifies_signature = False

    def identify(self, token: Optional[str]) -> Optional[WhopIdentity]:
        raise NotImplementedError


class UnverifiedTokenProvider(IdentityProvider):
    """
    Decode the token payload without checking its signature.

    Only safe when the header is injected by Whop's proxy, which verifies
    the user before forwarding the request.
    """

    verifies_signature = False

    def identify(self, token: Optional[str]) -> Optional[WhopIdentity]:
        if not token:
            return None

        if token.count('.') != 2:
            logger.info('[Auth] Malformed token: expected three segments')
            return None

        try:
            payload = jwt.decode(token, options={'verify_signature': False})
        except (jwt.InvalidTokenError, ValueError, TypeError) as e:
            logger.info(f'[Auth] Failed to decode token: {e}')
            return None

        return identity_from_payload(payload)


class SignedTokenProvider(IdentityProvider):
    """Verify an HS256-signed token with a shared secret."""

    verifies_signature = True

    def __init__(self, secret: str, audience: str = None):
        self.secret = secret
        self.audience = audience

    def identify(self, token: Optional[str]) -> Optional[WhopIdentity]:
        if not token:
            return None

        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=['HS256'],
                audience=self.audience,
                options={
                    'verify_aud': bool(self.audience),
                    'verify_exp': True,
                }
            )
        except jwt.ExpiredSignatureError:
            logger.info('[Auth] Token expired')
            return None
        except jwt.InvalidTokenError as e:
            logger.info(f'[Auth] Invalid token: {e}')
            return None

        return identity_from_payload(payload)


def build_identity_provider(config) -> IdentityProvider:
    """Pick the provider for this deployment."""
    secret = config.get('WHOP_TOKEN_SECRET')
    if secret:
        return SignedTokenProvider(secret)
    return UnverifiedTokenProvider()


def get_token_from_request() -> Optional[str]:
    """
    Get the Whop user token from the request.

    Priority:
    1. x-whop-user-token header
    2. x-whop-token header
    3. Authorization: Bearer <token>
    """
    for header in TOKEN_HEADERS:
        token = request.headers.get(header)
        if token:
            return token

    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header.split(' ', 1)[1].strip() or None

    return None


def get_identity_from_request() -> Optional[WhopIdentity]:
    """Resolve the caller's identity with the configured provider."""
    return get_services().identity.identify(get_token_from_request())


def _company_override() -> str:
    """companyId passed explicitly by the seller dashboard (query or body)."""
    company_id = request.args.get('companyId')
    if company_id:
        return company_id
    body = request.get_json(silent=True)
    if isinstance(body, dict) and body.get('companyId'):
        return str(body['companyId'])
    return ''


def require_whop_user(f):
    """
    Decorator to require an authenticated Whop user.

    Sets g.whop_user (WhopIdentity) on success, returns 401 otherwise.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = get_identity_from_request()
        if not identity or not identity.user_id:
            return unauthorized('Unauthorized')

        g.whop_user = identity
        return f(*args, **kwargs)

    return decorated_function


def require_company_admin(f):
    """
    Decorator for seller endpoints.

    Resolves the company from the token, or from an explicit companyId,
    and checks that the user is its owner or admin when ENFORCE_SELLER_ROLE
    is on. Sets g.whop_user and g.company_id.

    Usage:
        @require_company_admin
        def my_endpoint():
            company_id = g.company_id
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = get_identity_from_request() or WhopIdentity()
        company_id = _company_override() or identity.company_id
        enforce = current_app.config.get('ENFORCE_SELLER_ROLE', True)

        if not company_id:
            return unauthorized('Unauthorized - companyId required')

        if enforce:
            if not identity.user_id:
                return unauthorized('Unauthorized')

            if not get_services().whop.is_user_owner_or_admin(identity.user_id, company_id):
                return forbidden('Only company owners/admins can manage indicators')

        g.whop_user = identity
        g.company_id = company_id
        return f(*args, **kwargs)

    return decorated_function
