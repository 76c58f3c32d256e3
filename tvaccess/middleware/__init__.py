"""
Middleware package.
"""
from .whop_auth import (
    WhopIdentity,
    IdentityProvider,
    UnverifiedTokenProvider,
    SignedTokenProvider,
    require_whop_user,
    require_company_admin,
    get_identity_from_request,
)
