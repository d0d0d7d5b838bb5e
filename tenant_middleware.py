# tenant_middleware.py - Bearer token verification and role gating
# Every authenticated request carries the business (tenant) it acts for

from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import g, request, current_app

from errors import Forbidden, Unauthorized

WRITE_ROLES = ('admin', 'manager', 'sales')
MANAGE_ROLES = ('admin', 'manager')


def generate_access_token(user_id, role, business_id=None, secret=None, expires_in=None):
    """Issue an HS256 token carrying id, role and business_id"""
    secret = secret or current_app.config['SECRET_KEY']
    if expires_in is None:
        expires_in = current_app.config.get('JWT_ACCESS_TOKEN_EXPIRES', timedelta(hours=24))
    now = datetime.now(timezone.utc)
    payload = {
        'id': user_id,
        'role': role,
        'business_id': business_id or user_id,
        'iat': now,
        'exp': now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def verify_access_token(token, secret):
    """Decoded claims, or Unauthorized with the reason"""
    try:
        claims = jwt.decode(token, secret, algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        raise Unauthorized('TOKEN_EXPIRED', 'Token has expired')
    except jwt.InvalidTokenError:
        raise Unauthorized('INVALID_TOKEN', 'Invalid token')
    if not claims.get('id'):
        raise Unauthorized('INVALID_TOKEN', 'Invalid token')
    return claims


def require_tenant(f):
    """Decorator to ensure tenant context is set"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Get token from Authorization header
        auth_header = request.headers.get('Authorization', '')
        token = auth_header[len('Bearer '):].strip() if auth_header.startswith('Bearer ') else None

        if not token:
            raise Unauthorized('NO_TOKEN_PROVIDED', 'No authorization token provided')

        claims = verify_access_token(token, current_app.config['SECRET_KEY'])

        # Set tenant context in Flask g
        g.user = claims
        g.user_id = str(claims['id'])
        g.user_role = claims.get('role')
        g.business_id = str(claims.get('business_id') or claims['id'])

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Reject principals whose role is not listed. Apply under require_tenant."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if getattr(g, 'user_role', None) not in roles:
                current_app.logger.warning(
                    f"Role '{getattr(g, 'user_role', None)}' denied for {request.method} {request.path}"
                )
                raise Forbidden('INSUFFICIENT_PERMISSIONS', 'Insufficient permissions')
            return f(*args, **kwargs)
        return decorated_function
    return decorator

