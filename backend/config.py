import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///doko.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Rounds a failed announcement keeps counting as a spritze
    CARRY_OVER_DURATION = int(os.environ.get('CARRY_OVER_DURATION', '4'))
    # Sanity ceilings
    MAX_ROUNDS = int(os.environ.get('MAX_ROUNDS', '1000'))
    MAX_CARRY_OVERS = int(os.environ.get('MAX_CARRY_OVERS', '100'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '50'))
    # Above this many spritzes a round is only logged as suspicious
    MAX_SAFE_SPRITZE_COUNT = int(os.environ.get('MAX_SAFE_SPRITZE_COUNT', '10'))
    # Debounce for persisting game state (ms). 0 saves synchronously.
    SAVE_DEBOUNCE_MS = int(os.environ.get('SAVE_DEBOUNCE_MS', '500'))
    # Include the full error context in API responses (development only)
    EXPOSE_ERROR_CONTEXT = os.environ.get('EXPOSE_ERROR_CONTEXT', '0') == '1'
