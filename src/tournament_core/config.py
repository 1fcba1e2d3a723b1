"""
Dashboard configuration: YAML file + environment overrides.
"""
import logging
import os

import yaml

from .bracket import DEFAULT_ROUND_NAMES
from .service import DEFAULT_TIMEOUT, HttpTournamentService, YamlTournamentService
from .standings import DEFAULT_HISTORY_LIMIT

logger = logging.getLogger(__name__)


BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

ENV_OVERRIDES = {
    'TOURNAMENT_API_URL': 'api_url',
    'TOURNAMENT_API_TOKEN': 'api_token',
    'TOURNAMENT_API_TIMEOUT': 'api_timeout',
    'TOURNAMENT_DATA_DIR': 'data_dir',
}


def get_default_config():
    """Return default dashboard settings."""
    return {
        'api_url': None,
        'api_token': None,
        'api_timeout': DEFAULT_TIMEOUT,
        'data_dir': os.path.join(BASE_DIR, 'data'),
        'history_limit': DEFAULT_HISTORY_LIMIT,
        'round_names': list(DEFAULT_ROUND_NAMES),
    }


def load_config(path=None):
    """
    Load settings from a YAML file (TOURNAMENT_CONFIG when no path is given),
    then apply environment overrides. Missing or malformed files fall back to
    the defaults.
    """
    config = get_default_config()
    path = path or os.environ.get('TOURNAMENT_CONFIG')
    if path and os.path.exists(path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
            if isinstance(data, dict):
                config.update({k: v for k, v in data.items() if k in config})
            elif data is not None:
                logger.warning(f'Ignoring {path}: expected a mapping')
        except yaml.YAMLError as e:
            logger.warning(f'Failed to parse {path}: {e}')
    elif path:
        logger.warning(f'Config file {path} not found, using defaults')

    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    config['api_timeout'] = float(config['api_timeout'])
    config['history_limit'] = int(config['history_limit'])
    config['round_names'] = tuple(config['round_names'] or DEFAULT_ROUND_NAMES)
    return config


def build_service(config):
    """HTTP client when an API URL is configured, local YAML store otherwise."""
    if config.get('api_url'):
        logger.info(f"Using tournament API at {config['api_url']}")
        return HttpTournamentService(config['api_url'], token=config.get('api_token'),
                                     timeout=config['api_timeout'])
    logger.info(f"Using local tournament data in {config['data_dir']}")
    return YamlTournamentService(config['data_dir'])
