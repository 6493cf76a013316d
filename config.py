"""
Practice Tools Configuration
Supports AWS Parameter Store for production secrets
"""
import os
from functools import lru_cache

import boto3


def get_parameter(name: str, default: str = "") -> str:
    """Get parameter from AWS Parameter Store or environment"""
    # Environment variable takes precedence
    env_key = name.upper().replace("-", "_").replace("/", "_")
    if env_key in os.environ:
        return os.environ[env_key]

    if os.environ.get("USE_PARAMETER_STORE"):
        try:
            ssm = boto3.client("ssm", region_name=os.environ.get("AWS_REGION", "us-east-1"))
            path = os.environ.get("PARAMETER_STORE_PATH", "/practicetools/prod/")
            response = ssm.get_parameter(Name=f"{path}{name}", WithDecryption=True)
            return response["Parameter"]["Value"]
        except Exception as e:
            print(f"Warning: Could not load {name} from Parameter Store: {e}")

    return default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _env_flag(name: str, default: str = "1") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration"""
    # Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///practicetools.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Fix Render's postgres:// URL
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql://", 1)

    # Session
    SESSION_PERMANENT = False
    PERMANENT_SESSION_LIFETIME = 86400

    # Security
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = 3600

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # OpenAI
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4.1")
    OPENAI_EMBEDDING_MODEL = os.environ.get("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    OPENAI_TIMEOUT = _env_float("OPENAI_TIMEOUT", 60.0)

    # AWS
    AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")

    # ChatNPT
    CHATNPT_CLASSIFIER_MODEL = os.environ.get("CHATNPT_CLASSIFIER_MODEL", "") or OPENAI_MODEL
    CHATNPT_CLASSIFIER_ENABLED = _env_flag("CHATNPT_CLASSIFIER_ENABLED")
    CHATNPT_VECTOR_ENABLED = _env_flag("CHATNPT_VECTOR_ENABLED")
    CHATNPT_MAX_CONTEXT_CHUNKS = _env_int("CHATNPT_MAX_CONTEXT_CHUNKS", 40)
    CHATNPT_VECTOR_TOP_K = _env_int("CHATNPT_VECTOR_TOP_K", 20)
    CHATNPT_MIN_VECTOR_SCORE = _env_float("CHATNPT_MIN_VECTOR_SCORE", 0.25)
    CHATNPT_LEXICAL_WEIGHT = _env_float("CHATNPT_LEXICAL_WEIGHT", 0.5)
    CHATNPT_VECTOR_WEIGHT = _env_float("CHATNPT_VECTOR_WEIGHT", 0.5)
    CHATNPT_MAX_TOKENS = _env_int("CHATNPT_MAX_TOKENS", 2000)
    CHATNPT_LIST_LIMIT = _env_int("CHATNPT_LIST_LIMIT", 50)
    CHATNPT_SOURCE_TEXT_LIMIT = _env_int("CHATNPT_SOURCE_TEXT_LIMIT", 1200)
    CHATNPT_EMBED_BATCH_SIZE = _env_int("CHATNPT_EMBED_BATCH_SIZE", 32)
    CHATNPT_RATE_WINDOW = _env_int("CHATNPT_RATE_WINDOW", 60)
    CHATNPT_RATE_MAX = _env_int("CHATNPT_RATE_MAX", 20)

    # App Version
    APP_VERSION = os.environ.get("APP_VERSION", "2026.10")
    BUILD_TIME = os.environ.get("BUILD_TIME", "")
    GIT_COMMIT = os.environ.get("GIT_COMMIT", "")


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Override with Parameter Store in production
    SECRET_KEY = get_parameter("secret-key", Config.SECRET_KEY)
    OPENAI_API_KEY = get_parameter("openai-api-key", Config.OPENAI_API_KEY)
    SQLALCHEMY_DATABASE_URI = get_parameter("database-url", Config.SQLALCHEMY_DATABASE_URI)


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False
    OPENAI_API_KEY = "test-key"
    CHATNPT_RATE_MAX = 1000


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


@lru_cache()
def get_config(env: str = None):
    """Get configuration by environment name"""
    env = env or os.environ.get("FLASK_ENV", "development")
    return config.get(env, DevelopmentConfig)
