import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3001'))
    # Comma-separated list; '*' allows any origin
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Regulation rounds; each round is one kick per player
    MAX_ROUNDS = int(os.environ.get('MAX_ROUNDS', '5'))
    DEFAULT_NICK = os.environ.get('DEFAULT_NICK', 'Guest')
    # How long finished matches stay listed in memory (sec). 0 keeps them forever.
    FINISHED_MATCH_RETENTION_SEC = int(os.environ.get('FINISHED_MATCH_RETENTION_SEC', '600'))
    # Unjoined private invites expire after this many seconds. 0 disables.
    INVITE_TTL_SEC = int(os.environ.get('INVITE_TTL_SEC', '1800'))
