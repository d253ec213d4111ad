"""
AWS Secrets Manager access with a short in-process cache.
"""

import json
import time
import logging
from typing import Dict, Tuple
from urllib.parse import quote_plus

import boto3

from congress_sync.etl.errors import ConfigurationError

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 300

_secret_cache: Dict[str, Tuple[str, float]] = {}
_client = None


def _get_client():
    global _client
    if _client is None:
        _client = boto3.client('secretsmanager')
    return _client


def get_secret(secret_arn: str) -> str:
    """
    Fetch a secret string, reusing a cached value for up to five minutes.

    Raises:
        ConfigurationError: If the secret has no string value.
    """
    cached = _secret_cache.get(secret_arn)
    if cached and cached[1] > time.time():
        return cached[0]

    response = _get_client().get_secret_value(SecretId=secret_arn)
    value = response.get('SecretString')
    if not value:
        raise ConfigurationError(f"Secret {secret_arn} has no string value")

    _secret_cache[secret_arn] = (value, time.time() + CACHE_TTL_SECONDS)
    return value


def get_secret_json(secret_arn: str) -> dict:
    return json.loads(get_secret(secret_arn))


def get_api_key(secret_arn: str) -> str:
    """API key secrets are stored as {"apiKey": "..."}."""
    secret = get_secret_json(secret_arn)
    api_key = secret.get('apiKey')
    if not api_key:
        raise ConfigurationError(f"Secret {secret_arn} has no apiKey field")
    return api_key


def get_database_url(secret_arn: str, driver: str = 'postgresql') -> str:
    """Build a SQLAlchemy URL from a {host, port, dbname, username, password} secret."""
    secret = get_secret_json(secret_arn)
    try:
        return (
            f"{driver}://{quote_plus(secret['username'])}:{quote_plus(secret['password'])}"
            f"@{secret['host']}:{secret.get('port', 5432)}/{secret['dbname']}"
        )
    except KeyError as e:
        raise ConfigurationError(f"Database secret {secret_arn} is missing field {e}")


def clear_cache():
    _secret_cache.clear()
