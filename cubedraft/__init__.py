from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
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
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from cubedraft.main import main
    flask_app.register_blueprint(main)

    from cubedraft.api.drafts import drafts
    flask_app.register_blueprint(drafts, url_prefix='/api/drafts')

    from cubedraft.api.auctions import auctions
    flask_app.register_blueprint(auctions, url_prefix='/api/drafts')

    from cubedraft.api.cubes import cubes, games
    flask_app.register_blueprint(cubes, url_prefix='/api/cubes')
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Handlers bind to the module-level socketio instance
    from cubedraft.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from cubedraft.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    from cubedraft.commands import register_commands
    register_commands(flask_app)

    return flask_app
