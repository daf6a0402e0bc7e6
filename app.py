from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_mail import Mail
from flask_wtf.csrf import CSRFProtect
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_talisman import Talisman
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from config import Config

# Import utility functions from utils package
from utils.security import RateLimiter

from models import init_models
from services import build_services
from services.errors import ServiceError

# 版本信息
VERSION = "2026.10.18.001"


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        # Drop half-applied changes from the failed request
        app.db.session.rollback()
        if error.http_status >= 500:
            app.logger.error(f"Service error: {error.message}")
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            "message": error.description,
            "code": error.name.upper().replace(" ", "_"),
        }), error.code


def create_app(config_object=Config, **service_overrides):
    """Build one application instance; ``service_overrides`` replace service delegates (tests pass fakes)"""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Add security headers for all routes
    if app.config.get("TALISMAN_ENABLED") and not app.debug and not app.testing:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)
        Talisman(
            app,
            force_https=app.config.get("FORCE_HTTPS", False),
            strict_transport_security=True,
            strict_transport_security_max_age=31536000,
            content_security_policy={
                'default-src': "'self'",
                'img-src': "'self' data:",
                'connect-src': "'self'",
            },
            referrer_policy='strict-origin-when-cross-origin'
        )

    # Initialize extensions
    db = SQLAlchemy(app)
    app.db = db
    mail = Mail(app)
    app.mail = mail  # Make mail available to utils modules
    csrf = CSRFProtect(app)

    # Setup rate limiting
    Limiter(
        app=app,
        key_func=get_remote_address,
        default_limits=["1000 per day", "200 per hour"],
        storage_uri=app.config.get("RATELIMIT_STORAGE_URI", "memory://"),
    )
    app.rate_limiter = RateLimiter()

    with app.app_context():
        app.models = init_models(db)
    app.services = build_services(app, db, app.models, **service_overrides)

    register_error_handlers(app)

    import routes
    routes.init_all_routes(app, csrf)

    @app.cli.command("init-db")
    def init_db_command():
        """Create all database tables"""
        db.create_all()
        app.logger.info("Database tables created")

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "version": VERSION})

    return app


if __name__ == "__main__":
    application = create_app()
    with application.app_context():
        application.db.create_all()
    application.run(host="0.0.0.0", port=5000)
