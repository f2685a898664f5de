from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
import logging
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=flask_app.config.get('CORS_ORIGINS', []))

    # Import and register blueprints here
    from oldly.main import main
    flask_app.register_blueprint(main)

    from oldly.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/game')

    from oldly.api.rankings import rankings
    flask_app.register_blueprint(rankings, url_prefix='/api/rankings')

    from oldly.api.decks import decks
    flask_app.register_blueprint(decks, url_prefix='/api/decks')

    # Flask-Login user loader
    from oldly.models import User

    @login_manager.user_loader
    def load_user(user_id):
        user = db.session.get(User, int(user_id))
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from oldly.seed import seed_catalog
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_catalog(db.session)
            print('Database has been reset and seeded!')

    @click.command('expire-stale-games')
    def expire_stale_games_command():
        """Expires every started game older than GAME_EXPIRY_SEC."""
        from oldly.services.games.manager import build_manager
        with flask_app.app_context():
            count = build_manager().expire_stale_sessions()
            print(f'{count} game(s) marked as expired')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(expire_stale_games_command)

    return flask_app
