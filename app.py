import logging

import click
from flask import Flask, flash, redirect, render_template, request, url_for
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFError

from config.config import Config
from extensions import csrf, db, login_manager
from models import User
from utils.decorators import get_current_user_role
from utils.filters import register_filters
from utils.logging_setup import configure_logging
from utils.seed_data import run_seed

# Route Imports
from routes.auth_routes import auth_bp
from routes.admin_routes import admin_bp
from routes.faculty_routes import faculty_bp
from routes.student_routes import student_bp

logger = logging.getLogger(__name__)

migrate = Migrate()


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    configure_logging(app)

    # Initialize Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)
    login_manager.login_view = "auth.login"  # Where to go if not logged in
    login_manager.login_message = "Please log in to access this page."
    login_manager.login_message_category = "info"

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    # Register Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(faculty_bp)
    app.register_blueprint(student_bp)

    register_filters(app)
    register_error_handlers(app)

    @app.context_processor
    def inject_globals():
        return {
            "system_name": app.config["SYSTEM_NAME"],
            "current_role": get_current_user_role(),
        }

    @app.cli.command("seed")
    def seed_command():
        """Create roles, departments and the admin account."""
        run_seed()
        click.echo("Seed data loaded.")

    logger.info("Application started (%s)", app.config["SYSTEM_NAME"])
    return app


def register_error_handlers(app):
    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        logger.warning("CSRF failure on %s: %s", request.path, error.description)
        flash("Your session expired or the form was tampered with. Please try again.", "error")
        return redirect(request.referrer or url_for("auth.index"))

    @app.errorhandler(404)
    def not_found(error):
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        logger.error(
            "Unhandled error on %s", request.path,
            exc_info=getattr(error, "original_exception", None) or error,
        )
        return render_template("errors/500.html"), 500


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=True)
