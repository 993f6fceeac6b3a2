"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException
from marketplace.database import init_db
import logging
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO))

    # CSRF protection for the cookie-authenticated JSON API (X-CSRFToken header)
    CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'The session has expired. Reload and try again.'}), 400

    # Error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,  # 10% for profiling
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Prometheus metrics instrumentation
    from marketplace.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Resolve signed-in actors (customer, partner, company, admin) before each request
    from marketplace.middleware import load_actors

    @app.before_request
    def before_request_handler():
        load_actors()

    # Error Handlers
    from marketplace.exceptions import MarketplaceError

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"MarketplaceError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"MarketplaceError [{error.status_code}]: {error.message} ({request.method} {request.path})")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from marketplace.blueprints.main import main_bp
    from marketplace.blueprints.metrics import metrics_bp
    from marketplace.blueprints.cart import cart_bp, animal_cart_bp, partner_cart_bp
    from marketplace.blueprints.orders import orders_bp
    from marketplace.blueprints.partner import partner_bp
    from marketplace.blueprints.company import company_bp
    from marketplace.blueprints.admin import admin_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(animal_cart_bp)
    app.register_blueprint(partner_cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(partner_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(admin_bp)

    # Register CLI commands
    from marketplace.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
