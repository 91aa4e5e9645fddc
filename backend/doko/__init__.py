from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:1420",
    "http://127.0.0.1:1420",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from doko.main import main
    flask_app.register_blueprint(main)

    from doko.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Register Socket.IO event handlers on the initialized socketio instance
    from doko.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Ensure the blob table is known to SQLAlchemy / Alembic
    import doko.models  # noqa: F401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        from doko.services.games.session import clear_sessions
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            clear_sessions()
            print('Database has been reset!')

    @click.command('list-games')
    def list_games_command():
        """Lists the ids of all stored games."""
        from doko.storage import GameStore
        from doko.services.games.session import STORAGE_KEY_PREFIX
        with flask_app.app_context():
            for key in GameStore().keys(prefix=f'{STORAGE_KEY_PREFIX}:'):
                print(key.split(':', 1)[1])

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(list_games_command)

    return flask_app
