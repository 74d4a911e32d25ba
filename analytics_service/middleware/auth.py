import jwt
from jwt import PyJWKClient
from functools import wraps
from flask import request, g, current_app, has_request_context
from analytics_service.errors import AccessDeniedError, UnauthorizedError

# Module-level JWKS client (cached, so keys are not fetched on every request)
_jwks_client = None


def _get_jwks_client():
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = PyJWKClient(current_app.config['AUTH_JWKS_URL'], cache_keys=True)
    return _jwks_client


def _decode_token(token):
    """Decode and verify a bearer JWT against the identity provider's JWKS."""
    client = _get_jwks_client()
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=current_app.config['AUTH_ALGORITHMS'],
        audience=current_app.config['AUTH_AUDIENCE'],
    )


def _roles(payload):
    roles = payload.get('roles') or []
    if isinstance(roles, str):
        roles = [roles]
    role = payload.get('role')
    return set(roles) | ({role} if role else set())


def current_token():
    """Bearer token of the request being served, forwarded to upstreams."""
    if not has_request_context():
        return None
    return g.get('auth_token')


def require_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None
        auth_header = request.headers.get('Authorization', '')

        if auth_header.startswith('Bearer '):
            token = auth_header[7:]

        if not token:
            raise UnauthorizedError('Missing authorization token')

        try:
            payload = _decode_token(token)
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError('Token expired')
        except jwt.InvalidTokenError:
            raise UnauthorizedError('Invalid token')

        user_id = payload.get('sub')
        if not user_id:
            raise UnauthorizedError('Invalid token payload')

        g.user_id = user_id
        g.auth_token = token
        g.jwt_payload = payload

        return f(*args, **kwargs)
    return decorated


def require_admin(f):
    """Like require_auth, but the caller must also hold the admin role."""
    @require_auth
    @wraps(f)
    def decorated(*args, **kwargs):
        if current_app.config['ADMIN_ROLE'] not in _roles(g.jwt_payload):
            raise AccessDeniedError('admin role required')
        return f(*args, **kwargs)
    return decorated
