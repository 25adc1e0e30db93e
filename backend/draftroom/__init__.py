from flask import Flask, jsonify
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
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Draft rooms live on the app, never at module level
    from draftroom.services.draft import RoomRegistry
    from draftroom.services.draft.broadcaster import PresenceMap, SocketIOBroadcaster
    from draftroom.services.results import finish_room

    presence = PresenceMap()
    clock_enabled = not flask_app.config.get('TESTING') or flask_app.config.get('ENABLE_CLOCK_IN_TESTS')
    registry = RoomRegistry.from_config(
        flask_app.config,
        SocketIOBroadcaster(socketio, presence.sid_for),
        start_task=socketio.start_background_task if clock_enabled else None,
        on_complete=lambda room: finish_room(flask_app, room),
    )
    flask_app.extensions['draft_rooms'] = registry
    flask_app.extensions['draft_presence'] = presence

    from draftroom.api.drafts import drafts
    flask_app.register_blueprint(drafts, url_prefix='/api/drafts')

    @flask_app.route('/')
    def index():
        return jsonify({'message': 'Draft room server', 'rooms': len(registry)})

    # Register Socket.IO event handlers
    from draftroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        import draftroom.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
