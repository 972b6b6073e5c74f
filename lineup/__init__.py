from flask import Flask, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from lineup import extensions
from lineup.config import DevelopmentConfig
from lineup.extensions import init_db, init_redis, socketio
from lineup.utils.errors import LineupError


def register_error_handlers(app: Flask):

    @app.errorhandler(LineupError)
    def handle_domain_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({
            "success": False,
            "message": "Route not found",
            "path": request.path,
        }), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        app.logger.exception(f"Database error on {request.method} {request.path}")
        body = {"success": False, "message": "Server error"}
        if app.debug:
            body["error"] = str(error)
        return jsonify(body), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        app.logger.exception(f"Unhandled error on {request.method} {request.path}")
        body = {"success": False, "message": "Server error"}
        if app.debug:
            body["error"] = str(error)
        return jsonify(body), 500


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=False)

    if config_object is None:
        config_object = DevelopmentConfig
    app.config.from_object(config_object)

    init_redis(app)
    init_db(app)

    # namespaces must be known before init_app builds the server
    import lineup.handlers.socket.live_namespace  # noqa: F401

    socketio.init_app(
        app,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE"),
        message_queue=app.config.get("SOCKETIO_MESSAGE_QUEUE"),
    )

    from lineup.handlers.home import home_bp
    from lineup.handlers.auth import auth_bp
    from lineup.handlers.menu import menu_bp
    from lineup.handlers.orders import orders_bp

    app.register_blueprint(home_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(menu_bp)
    app.register_blueprint(orders_bp)

    register_error_handlers(app)

    @app.teardown_appcontext
    def shutdown_session(exception=None):
        if extensions.SessionLocal:
            extensions.SessionLocal.remove()

    return app, socketio
