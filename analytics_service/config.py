import os
from dotenv import load_dotenv

load_dotenv()

def _fix_db_url(url):
    """Fix common DATABASE_URL issues for SQLAlchemy compatibility."""
    if not url:
        return 'sqlite:///analytics.db'
    # Heroku-style URLs use postgres:// but SQLAlchemy requires postgresql://
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url

class Config:
    SQLALCHEMY_DATABASE_URI = _fix_db_url(os.environ.get('DATABASE_URL', ''))
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upstream services
    USER_SERVICE_URL = os.environ.get('USER_SERVICE_URL', 'http://user-service:8081')
    CONTENT_SERVICE_URL = os.environ.get('CONTENT_SERVICE_URL', 'http://content-service:8082')
    ENGAGEMENT_SERVICE_URL = os.environ.get('ENGAGEMENT_SERVICE_URL', 'http://engagement-service:8084')
    GAMIFICATION_SERVICE_URL = os.environ.get('GAMIFICATION_SERVICE_URL', 'http://gamification-service:8085')
    GATEWAY_TIMEOUT = float(os.environ.get('GATEWAY_TIMEOUT', '5'))

    # Circuit breaker settings (shared by every upstream)
    BREAKER_FAILURE_RATE_THRESHOLD = float(os.environ.get('BREAKER_FAILURE_RATE_THRESHOLD', '50'))
    BREAKER_MINIMUM_CALLS = int(os.environ.get('BREAKER_MINIMUM_CALLS', '10'))
    BREAKER_SLIDING_WINDOW_SIZE = int(os.environ.get('BREAKER_SLIDING_WINDOW_SIZE', '10'))
    BREAKER_WAIT_DURATION = float(os.environ.get('BREAKER_WAIT_DURATION', '30'))
    BREAKER_HALF_OPEN_CALLS = int(os.environ.get('BREAKER_HALF_OPEN_CALLS', '1'))

    # Auth
    AUTH_JWKS_URL = os.environ.get('AUTH_JWKS_URL', '')
    AUTH_AUDIENCE = os.environ.get('AUTH_AUDIENCE', 'authenticated')
    AUTH_ALGORITHMS = os.environ.get('AUTH_ALGORITHMS', 'ES256,RS256').split(',')
    ADMIN_ROLE = os.environ.get('ADMIN_ROLE', 'ADMIN')

    # Analytics defaults
    ANALYTICS_DEFAULT_WINDOW_DAYS = int(os.environ.get('ANALYTICS_DEFAULT_WINDOW_DAYS', '30'))
    TOP_CONTENT_DEFAULT_LIMIT = int(os.environ.get('TOP_CONTENT_DEFAULT_LIMIT', '10'))
    HISTORY_MAX_PAGE_SIZE = int(os.environ.get('HISTORY_MAX_PAGE_SIZE', '100'))

class DevConfig(Config):
    DEBUG = True

class ProdConfig(Config):
    DEBUG = False

class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    GATEWAY_TIMEOUT = 1.0
