"""
Practice Tools Application Factory
"""
import logging
import os
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

from config import config

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("chatnpt").setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def create_app(config_name='default'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    login_manager.login_view = 'auth.login'

    # Register blueprints
    from app.auth import auth_bp
    from app.api import api_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    # Exempt API routes from CSRF (JS doesn't send tokens)
    csrf.exempt(auth_bp)
    csrf.exempt(api_bp)

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith('/api/'):
            return jsonify({"ok": False, "error": "Not found"}), 404
        return e

    @app.errorhandler(500)
    def server_error(e):
        app.logger.exception("Unhandled error on %s", request.path)
        return jsonify({"ok": False, "error": "Internal server error"}), 500

    # Health check endpoint
    @app.route('/healthz')
    def healthz():
        """Health check for load balancers and monitoring"""
        from chatnpt.llm import client_ready

        try:
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))
            db_status = "ok"
        except Exception as e:
            db_status = f"error: {e}"

        openai_ok, openai_msg = client_ready()
        return jsonify({
            "status": "ok" if db_status == "ok" else "degraded",
            "version": app.config["APP_VERSION"],
            "database": db_status,
            "openai_ready": openai_ok,
            "openai_message": openai_msg,
            "model": app.config["OPENAI_MODEL"],
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    # Version endpoint
    @app.route('/version')
    def version():
        """Version and build info"""
        return jsonify({
            "version": app.config["APP_VERSION"],
            "build_time": app.config["BUILD_TIME"],
            "git_commit": app.config["GIT_COMMIT"],
            "features": {
                "chatnpt": True,
                "chatnpt_streaming": True,
                "vector_search": bool(app.config.get("CHATNPT_VECTOR_ENABLED")),
                "list_queries": bool(app.config.get("CHATNPT_CLASSIFIER_ENABLED")),
            }
        })

    # Handle database initialization
    with app.app_context():
        from sqlalchemy import text, inspect
        from app import models  # noqa: F401

        if os.getenv('RESET_DB', '').strip() in ('1', 'true', 'yes'):
            app.logger.warning('RESET_DB is set - dropping all tables...')
            db.drop_all()
            db.create_all()
            app.logger.warning('Fresh tables created')
        else:
            # Only create tables if they don't exist (safe for existing DB)
            inspector = inspect(db.engine)
            existing_tables = inspector.get_table_names()
            if not existing_tables:
                app.logger.info('No tables found, creating...')
                db.create_all()

    return app
