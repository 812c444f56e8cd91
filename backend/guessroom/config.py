import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Transport ("" picks eventlet or threading depending on the platform)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Game
    ROUND_DURATION_SEC = int(os.environ.get("ROUND_DURATION_SEC", "60"))
    TURN_DURATION_SEC = int(os.environ.get("TURN_DURATION_SEC", "20"))
    REVEAL_DELAY_SEC = int(os.environ.get("REVEAL_DELAY_SEC", "3"))
    POINTS_GUESSER = int(os.environ.get("POINTS_GUESSER", "10"))
    POINTS_DRAWER = int(os.environ.get("POINTS_DRAWER", "5"))
    WIN_SCORE = int(os.environ.get("WIN_SCORE", "50"))
    MAX_INCORRECT_GUESSES = int(os.environ.get("MAX_INCORRECT_GUESSES", "6"))
    MAX_STROKES = int(os.environ.get("MAX_STROKES", "5000"))
