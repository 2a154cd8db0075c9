# backend/solespace/__init__.py
from flask import Flask, jsonify

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    # Overrides must land before extensions bind the engine
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.user_auth import user_auth_bp
    from .routes.shop_owner import shop_owner_bp
    from .routes.erp import erp_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(user_auth_bp)
    app.register_blueprint(shop_owner_bp)
    app.register_blueprint(erp_bp)
    app.register_blueprint(admin_bp)

    # Per-request auth context, then CSRF for state-changing methods
    from .guards import init_auth_context
    from .csrf import csrf_protect

    app.before_request(init_auth_context)
    app.before_request(csrf_protect)

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(_error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
