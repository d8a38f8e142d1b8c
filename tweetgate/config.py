"""
Configuration management with support for development (.env) and production (secret stores).

Development: Uses python-dotenv to load from .env file
Production: Supports AWS Secrets Manager

Never commit .env file with real credentials to git!
"""
from dotenv import load_dotenv
import os
import json
from typing import Optional

# Load from .env for development
load_dotenv()


class SecretsManager:
    """Handles secret retrieval from different sources."""

    @staticmethod
    def get_secret(key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get secret from environment variable or secret store.

        Priority order:
        1. Environment variable (if set explicitly)
        2. AWS Secrets Manager (when USE_AWS_SECRETS=true)
        3. .env file / default value
        """
        if key in os.environ and os.environ[key]:
            return os.environ[key]

        if os.getenv('USE_AWS_SECRETS') == 'true':
            return SecretsManager._get_from_aws_secrets(key, default)

        return os.getenv(key, default)

    @staticmethod
    def _get_from_aws_secrets(secret_name: str, default: Optional[str] = None) -> Optional[str]:
        """Retrieve secret from AWS Secrets Manager."""
        try:
            import boto3
            client = boto3.client('secretsmanager', region_name=os.getenv('AWS_REGION', 'us-east-1'))
            response = client.get_secret_value(SecretId=secret_name)

            if 'SecretString' in response:
                secret = json.loads(response['SecretString'])
                return secret.get(secret_name, default)
            return response.get('SecretBinary', default)
        except Exception as e:
            from .logger import logger
            logger.warning(f'Failed to retrieve secret {secret_name} from AWS: {e}')
            return default


def _flag(value: Optional[str]) -> bool:
    return (value or '').lower() in ('1', 'true', 'yes')


class Config:
    """Application configuration from secure sources."""

    # ============ Twitter/X OAuth2 Client ============
    TW_CLIENT_ID = SecretsManager.get_secret('TW_CLIENT_ID')
    # Optional for public PKCE clients; confidential clients send it via HTTP Basic auth
    TW_CLIENT_SECRET = SecretsManager.get_secret('TW_CLIENT_SECRET', '')
    TW_REDIRECT_URI = SecretsManager.get_secret('TW_REDIRECT_URI', 'http://localhost:3000/auth/callback')
    TW_AUTH_URL = SecretsManager.get_secret('TW_AUTH_URL', 'https://twitter.com/i/oauth2/authorize')
    TW_TOKEN_URL = SecretsManager.get_secret('TW_TOKEN_URL', 'https://api.twitter.com/2/oauth2/token')
    OAUTH_TIMEOUT_SECONDS = float(SecretsManager.get_secret('OAUTH_TIMEOUT_SECONDS', '15'))

    # ============ Token Storage ============
    TOKEN_STORE_BACKEND = SecretsManager.get_secret('TOKEN_STORE_BACKEND', 'file')
    TOKEN_STORE_PATH = SecretsManager.get_secret('TOKEN_STORE_PATH', 'tokens.json')

    # ============ LLM Provider Credentials ============
    GROQ_API_KEY = SecretsManager.get_secret('GROQ_API_KEY')
    GROQ_BASE_URL = SecretsManager.get_secret('GROQ_BASE_URL')
    LLM_MODEL = SecretsManager.get_secret('LLM_MODEL', 'llama-3.3-70b-versatile')
    LLM_TEMPERATURE = float(SecretsManager.get_secret('LLM_TEMPERATURE', '0.7'))
    LLM_MAX_TOKENS = int(SecretsManager.get_secret('LLM_MAX_TOKENS', '100'))
    LLM_TIMEOUT_SECONDS = float(SecretsManager.get_secret('LLM_TIMEOUT_SECONDS', '20'))

    # ============ Web Server ============
    SESSION_SECRET = SecretsManager.get_secret('SESSION_SECRET', 'change-me')
    PORT = int(SecretsManager.get_secret('PORT', '3000'))
    ENVIRONMENT = SecretsManager.get_secret('ENVIRONMENT', 'development')
    SESSION_MAX_AGE_SECONDS = int(SecretsManager.get_secret('SESSION_MAX_AGE_SECONDS', '3600'))

    # ============ Runtime Flags ============
    LOG_LEVEL = SecretsManager.get_secret('LOG_LEVEL', 'INFO')
    USE_AWS_SECRETS = _flag(SecretsManager.get_secret('USE_AWS_SECRETS', 'false'))

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == 'production'

    @classmethod
    def validate(cls):
        """Validate that all required secrets are configured."""
        required_keys = ['TW_CLIENT_ID', 'GROQ_API_KEY']
        if cls.is_production():
            required_keys.append('SESSION_SECRET')

        missing = [key for key in required_keys if not getattr(cls, key)]
        if cls.is_production() and cls.SESSION_SECRET == 'change-me':
            missing.append('SESSION_SECRET')
        if missing:
            from .logger import logger
            logger.error(f'Missing required secrets: {", ".join(sorted(set(missing)))}')
            return False
        return True
