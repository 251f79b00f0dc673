import logging
from typing import Optional

logger = logging.getLogger(__name__)

class AuthService:
    """Resolves the caller identity attached to a callable request"""

    def __init__(self, supabase_client):
        self.supabase = supabase_client
        logger.info("Auth service initialized")

    def verify_token(self, token: Optional[str]) -> Optional[str]:
        """Return the user id for a bearer token, or None if it is not valid"""
        if not token:
            return None

        try:
            response = self.supabase.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token verification failed: {str(e)}")
            return None

        user = getattr(response, 'user', None) if response else None
        if not user or not getattr(user, 'id', None):
            logger.warning("Token did not resolve to a user")
            return None
        return user.id
