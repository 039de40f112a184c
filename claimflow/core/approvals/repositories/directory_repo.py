"""Directory: read-only user, company and reporting-line lookups."""

from typing import Any, Dict, List, Optional

from claimflow.core.base_repository import BaseRepository

_USER_COLUMNS = 'id, name, email, role, company_id, manager_id'


class UserDirectory(BaseRepository):
    """Resolves users for approver designations."""

    def get_user(self, user_id) -> Optional[Dict[str, Any]]:
        return self.query_one(
            f'SELECT {_USER_COLUMNS} FROM users WHERE id = %s', (user_id,)
        )

    def get_users_by_company(self, company_id) -> List[Dict[str, Any]]:
        return self.query_all(f'''
            SELECT {_USER_COLUMNS} FROM users
            WHERE company_id = %s
            ORDER BY name
        ''', (company_id,))

    def get_user_manager(self, user_id) -> Optional[Dict[str, Any]]:
        """Direct manager of ``user_id``, or None if the user has none."""
        return self.query_one('''
            SELECT m.id, m.name, m.email, m.role, m.company_id, m.manager_id
            FROM users u
            JOIN users m ON m.id = u.manager_id
            WHERE u.id = %s
        ''', (user_id,))
