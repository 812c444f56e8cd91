import logging
import os

try:
    from backend.guessroom.server import create_app
except ImportError:  # pragma: no cover
    from guessroom.server import create_app

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

# One worker process only: all game state lives in this process.
app, socketio = create_app()
