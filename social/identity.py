"""
Identity resolution.

Verified user ids come from bearer tokens issued by the external identity
provider. The resolved AuthContext is passed explicitly into every core
call instead of being read from ambient request state.
"""
import logging
from dataclasses import dataclass
from functools import wraps

import jwt
from django.conf import settings
from django.http import JsonResponse
from django.middleware.csrf import CsrfViewMiddleware

from .errors import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)

# Claims that may carry the user id, in lookup order
USER_ID_CLAIMS = ('sub', 'userId', 'id', '_id')


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    via_session: bool = False


def verify_token(token):
    """Verify and decode a bearer token, returning None when invalid"""
    try:
        return jwt.decode(
            token,
            settings.PINGUP_JWT_SECRET,
            algorithms=settings.PINGUP_JWT_ALGORITHMS,
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired identity token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected invalid identity token: {e}")
        return None


def verify_provider_event(body):
    """
    Decode a signed user-lifecycle event sent by the identity provider.

    The body is a compact JWS signed with PINGUP_WEBHOOK_SECRET. Raises
    Unauthenticated when the signature does not verify.
    """
    if isinstance(body, bytes):
        body = body.decode('utf-8', errors='replace')
    try:
        return jwt.decode(
            body.strip(),
            settings.PINGUP_WEBHOOK_SECRET,
            algorithms=settings.PINGUP_JWT_ALGORITHMS,
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected identity provider event: {e}")
        raise Unauthenticated("Invalid event signature")


def user_id_from_claims(payload):
    for claim in USER_ID_CLAIMS:
        value = payload.get(claim)
        if value:
            return str(value)
    return None


def resolve(request):
    """
    Resolve the caller's AuthContext from a request.

    A bearer header always wins; a signed-in Django session (admin users)
    is only consulted when no bearer header was sent.
    """
    header = request.headers.get('Authorization', '')
    if header:
        if not header.startswith('Bearer '):
            return None
        token = header[len('Bearer '):].strip()
        if not token:
            return None
        payload = verify_token(token)
        if not payload:
            return None
        user_id = user_id_from_claims(payload)
        return AuthContext(user_id) if user_id else None

    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return AuthContext(str(user.pk), via_session=True)
    return None


def csrf_failure(request):
    """
    Run Django's CSRF check for a session-authenticated request.

    The API views are csrf_exempt because bearer tokens are not sent
    automatically by browsers; cookies are, so session callers still get
    checked. Returns the rejection reason, or None when the check passed.
    """
    check = CsrfViewMiddleware(lambda r: None)
    check.process_request(request)
    return check.process_view(request, None, (), {})


def auth_required(view_func):
    """Reject requests without a resolved identity with a 401 JSON body"""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        auth = getattr(request, 'auth', None)
        if auth is None:
            err = Unauthenticated()
            return JsonResponse({"success": False, "message": err.message}, status=err.status)
        if auth.via_session and csrf_failure(request) is not None:
            logger.warning(f"CSRF check failed for session user {auth.user_id} on {request.path}")
            err = Forbidden("CSRF verification failed")
            return JsonResponse({"success": False, "message": err.message}, status=err.status)
        return view_func(request, *args, **kwargs)
    return wrapper
