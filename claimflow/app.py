"""Flask application factory for claimflow."""

from flask import Flask
from flask_login import LoginManager

from claimflow.config import get_config
from claimflow.core.utils.logging_config import setup_logging, get_logger


def create_app(config=None):
    """Build the Flask app: logging, secret key, Flask-Login, approval routes."""
    config = config or get_config()
    setup_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)
    app_logger = get_logger('claimflow.app')

    app = Flask(__name__)

    # Secret key: required in production, dev fallback only when FLASK_DEBUG=true
    secret_key = config.SECRET_KEY
    if not secret_key:
        if config.DEBUG:
            secret_key = 'dev-secret-key-for-local-only'
            app_logger.warning('Using development secret key, set FLASK_SECRET_KEY for production')
        else:
            raise RuntimeError('FLASK_SECRET_KEY environment variable is required')
    app.secret_key = secret_key

    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['SESSION_COOKIE_SECURE'] = not config.DEBUG

    from claimflow.core.auth.models import User
    from claimflow.core.approvals.repositories import UserDirectory

    directory = UserDirectory()
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        row = directory.get_user(user_id)
        return User(row) if row else None

    @login_manager.unauthorized_handler
    def unauthorized():
        return {'success': False, 'error': 'Authentication required'}, 401

    from claimflow.core.approvals import approvals_bp
    app.register_blueprint(approvals_bp)

    app_logger.info('claimflow app created')
    return app
