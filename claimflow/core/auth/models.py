"""claimflow auth models.

User model for Flask-Login. Sessions are established by the platform's
authentication service; this app only loads the user behind a session.
"""
from flask_login import UserMixin


class User(UserMixin):
    """User class for Flask-Login."""

    def __init__(self, user_data):
        self.id = user_data['id']
        self.email = user_data.get('email')
        self.name = user_data.get('name')
        self.role = user_data.get('role')
        self.company_id = user_data.get('company_id')
        self.manager_id = user_data.get('manager_id')