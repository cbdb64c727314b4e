import logging
import os
from dataclasses import dataclass

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _env_flag(environ, name):
    return environ.get(name, 'false').strip().lower() in ('1', 'true', 'yes', 'on')


def _env_number(environ, name, default, cast):
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f'{name} must be a number, got {raw!r}') from None


@dataclass
class Config:
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 10.0
    host: str = '0.0.0.0'
    port: int = 5000
    production: bool = False
    test_mode: bool = False
    check_interval_minutes: int = 60
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ=None):
        """Builds the configuration from environment variables"""
        if environ is None:
            environ = os.environ

        # Render assigns its own port
        render = bool(environ.get('RENDER'))
        default_port = 10000 if render else 5000

        return cls(
            user_agent=environ.get('MANGAROCK_USER_AGENT') or DEFAULT_USER_AGENT,
            timeout=_env_number(environ, 'MANGAROCK_TIMEOUT', 10.0, float),
            host=environ.get('HOST') or '0.0.0.0',
            port=_env_number(environ, 'PORT', default_port, int),
            production=render or _env_flag(environ, 'PRODUCTION'),
            test_mode=_env_flag(environ, 'TEST_MODE'),
            check_interval_minutes=_env_number(environ, 'RELEASE_CHECK_MINUTES', 60, int),
            log_level=(environ.get('LOG_LEVEL') or 'INFO').upper(),
        )


def setup_logging(config):
    """Configures root logging for the entry points"""
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format=LOG_FORMAT
    )
