"""
Mock Authentication Service
Resolves the acting user from the x-user-id header against a fixed user table
"""
from typing import Dict, Optional
import logging

from utils.secure_logging import hash_user_id

logger = logging.getLogger(__name__)


class AuthService:
    """Demo-grade authentication: trusts the x-user-id header"""

    HEADER_NAME = 'x-user-id'
    DEFAULT_USER_ID = 'citizen1'

    USERS = {
        'netrunnerX': {'id': 'netrunnerX', 'role': 'admin'},
        'reliefAdmin': {'id': 'reliefAdmin', 'role': 'admin'},
        'citizen1': {'id': 'citizen1', 'role': 'contributor'},
        'citizen2': {'id': 'citizen2', 'role': 'contributor'},
    }

    def resolve_user(self, user_id: Optional[str]) -> Dict:
        """
        Map a header value to a known user

        Unknown or missing ids fall back to the default contributor.

        Args:
            user_id: Raw header value

        Returns:
            Dict with 'id' and 'role'
        """
        user = self.USERS.get((user_id or '').strip())
        if user is None:
            if user_id:
                logger.debug(f"Unknown user {hash_user_id(user_id)}, using default")
            user = self.USERS[self.DEFAULT_USER_ID]
        return dict(user)

    @staticmethod
    def is_admin(user: Dict) -> bool:
        return (user or {}).get('role') == 'admin'
