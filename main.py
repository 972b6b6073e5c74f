import eventlet
eventlet.monkey_patch()

import os

from lineup import create_app
from lineup.config import DevelopmentConfig, ProductionConfig

config = ProductionConfig if os.getenv("FLASK_ENV") == "production" else DevelopmentConfig
app, socketio_instance = create_app(config)

if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    app.logger.info(f"Starting Flask + SocketIO server on http://0.0.0.0:{port}")
    # Eventlet handles HTTP + WebSocket in the same process
    socketio_instance.run(app, host="0.0.0.0", port=port)
