# config.py - Configuration for the junk removal business API

import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


# ----------------------------------
# Flask/App Configuration
# ----------------------------------

class Config:
    """Base configuration settings"""
    SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or os.environ.get('SECRET_KEY') or 'default-fallback-secret-key'

    # PostgreSQL in production, local SQLite file otherwise
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///junk_removal.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_size': int(os.environ.get('DB_POOL_SIZE', 10)),
    }

    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')

    API_VERSION = '1.0.0'

    # Listing limits
    DEFAULT_PAGE_LIMIT = 20
    MAX_PAGE_LIMIT = 100
    SEARCH_RESULT_LIMIT = 50


class TestConfig(Config):
    """In-memory database, no file logging"""
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_DIR = ''
