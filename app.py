import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import click
from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from analytics import BudgetAnalytics
from auth import auth_bp, login_manager
from budgets import budget_bp
from config import load_config, setup_logging, to_flask_config, with_defaults
from exceptions import MoneyMaticError
from models import Budget, Transaction, User, db
from reminders import reminders_bp
from storage import DB_UNAVAILABLE_MESSAGE, SQLAlchemyStore
from transactions import transactions_bp

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Dict[str, Any]] = None,
    store=None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Flask:
    """
    Build the MoneyMatic API.

    Args:
        config: Configuration dict (see config.DEFAULT_CONFIG); loaded from
            config.yaml and the environment when omitted
        store: Read store for budget analytics; defaults to SQLAlchemyStore
        clock: Callable returning "now" for month defaults
    """
    if config is None:
        config = load_config()
    else:
        config = with_defaults(config)
    setup_logging(config)

    app = Flask(__name__)
    app.config.update(to_flask_config(config))

    db.init_app(app)
    login_manager.init_app(app)

    app.extensions['budget_analytics'] = BudgetAnalytics(store or SQLAlchemyStore(db.session), clock=clock)

    app.register_blueprint(auth_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(budget_bp)
    app.register_blueprint(reminders_bp)

    register_error_handlers(app)
    register_commands(app)

    @app.route('/')
    def index():
        return "Welcome to MoneyMatic Server"

    logger.info("MoneyMatic app created (%s)", app.config['APP_ENV'])
    return app


def register_error_handlers(app: Flask) -> None:
    def _body(message: str, error: Optional[Exception] = None) -> dict:
        body = {'message': message}
        if error is not None and app.config['APP_ENV'] == 'development':
            body['error'] = str(error)
        return body

    @app.errorhandler(MoneyMaticError)
    def handle_app_error(error):
        if error.status_code >= 500:
            logger.error("%s: %s", error.__class__.__name__, error)
        return jsonify(_body(error.message, error.original_error)), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        db.session.rollback()
        logger.error("Database error: %s", error)
        return jsonify(_body(DB_UNAVAILABLE_MESSAGE, error)), 503

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code is None or error.code < 400:
            return error
        return jsonify({'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception("Unhandled server error")
        return jsonify(_body("Server error", error)), 500


def register_commands(app: Flask) -> None:
    @app.cli.command('initdb')
    def initdb():
        db.create_all()
        click.echo('Database initialized.')

    @app.cli.command('delete-user')
    @click.argument('email')
    def delete_user(email):
        user = User.query.filter_by(email=email).first()
        if user is None:
            raise click.ClickException(f"User '{email}' not found.")
        db.session.delete(user)
        db.session.commit()
        click.echo(f"User '{email}' deleted.")

    @app.cli.command('inspect-db')
    def inspect_db():
        click.echo('Users in DB:')
        for user in User.query.order_by(User.id).all():
            tx_count = Transaction.query.filter_by(user_id=user.id).count()
            budget_count = Budget.query.filter_by(user_id=user.id).count()
            click.echo(f"- {user.id} | {user.email} | {tx_count} transactions | {budget_count} budgets")


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(
        debug=app.config['APP_ENV'] == 'development',
        port=int(os.environ.get('PORT', 5000)),
    )
