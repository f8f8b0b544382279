"""
Configuration file for the Disaster Response Platform backend.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Base configuration"""
    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = _env_bool('DEBUG', 'False')
    TESTING = False
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10 MB

    # Firebase
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_DATABASE_URL = os.getenv('FIREBASE_DATABASE_URL')

    # CORS
    CORS_ORIGINS = [
        origin for origin in os.getenv(
            'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000'
        ).split(',') if origin
    ]

    # Rate limiting (Flask-Limiter reads the RATELIMIT_* keys)
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', 'True')
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL', 'memory://')
    RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '200 per day;50 per hour')

    # Outbound HTTP
    USER_AGENT = os.getenv('USER_AGENT', 'DisasterResponseApp/1.0')
    SCRAPER_TIMEOUT_SECONDS = int(os.getenv('SCRAPER_TIMEOUT_SECONDS', '8'))

    # Official updates pipeline
    OFFICIAL_UPDATES_PER_SOURCE_CAP = int(os.getenv('OFFICIAL_UPDATES_PER_SOURCE_CAP', '5'))
    OFFICIAL_UPDATES_GLOBAL_CAP = int(os.getenv('OFFICIAL_UPDATES_GLOBAL_CAP', '10'))
    OFFICIAL_UPDATES_CACHE_TTL_SECONDS = int(os.getenv('OFFICIAL_UPDATES_CACHE_TTL_SECONDS', '3600'))

    # Social media feed
    SOCIAL_MEDIA_CACHE_TTL_SECONDS = int(os.getenv('SOCIAL_MEDIA_CACHE_TTL_SECONDS', '300'))

    # Nearby resources
    NEARBY_RESOURCES_RADIUS_KM = float(os.getenv('NEARBY_RESOURCES_RADIUS_KM', '10'))

    # Gemini
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
    GEMINI_TEXT_MODEL = os.getenv('GEMINI_TEXT_MODEL', 'gemini-2.5-flash')
    GEMINI_VISION_MODEL = os.getenv('GEMINI_VISION_MODEL', 'gemini-2.5-flash')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Test configuration: no rate limits, no real Firebase"""
    TESTING = True
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
