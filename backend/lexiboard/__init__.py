from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8081",
    "http://127.0.0.1:8081",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from lexiboard.main import main
    flask_app.register_blueprint(main)

    from lexiboard.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api')

    from lexiboard.api.players import players
    flask_app.register_blueprint(players, url_prefix='/api')

    # Register Socket.IO event handlers
    from lexiboard.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from lexiboard.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from lexiboard.services.games.catalog import seed_catalog
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3', 'testuser4']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)
            db.session.commit()

            boards = seed_catalog()
            print(f'Database has been reset and seeded with {len(boards)} boards!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
