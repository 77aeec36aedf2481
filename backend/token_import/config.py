"""
Token import engine configuration.
"""

import copy
import os
from typing import Any, Dict

from django.conf import settings

# Known ERC-6551 deployments, identical on every supported chain
DEFAULT_ACCOUNT_REGISTRY = '0x63c8A3536E4A647D48fC0076D442e3243f7e773b'
DEFAULT_ACCOUNT_IMPLEMENTATION = '0xa8a05744C04c7AD0D31Fcee368aC18040832F1c1'

NESTED_ACCOUNT_DEFAULTS = {
    1: {
        'name': 'Ethereum Mainnet',
        'registry': DEFAULT_ACCOUNT_REGISTRY,
        'implementation': DEFAULT_ACCOUNT_IMPLEMENTATION,
    },
    137: {
        'name': 'Polygon',
        'registry': DEFAULT_ACCOUNT_REGISTRY,
        'implementation': DEFAULT_ACCOUNT_IMPLEMENTATION,
    },
    21201: {
        'name': 'Private Chain',
        'registry': '',
        'implementation': '',
    },
}

DEFAULT_MAX_BATCH_SIZE = 100


def get_nested_account_defaults(chain_id: int) -> Dict[str, Any]:
    """Get default nested-account registry and implementation for a chain."""
    defaults = NESTED_ACCOUNT_DEFAULTS.get(chain_id)
    if defaults is None:
        return {
            'name': f'Chain {chain_id}',
            'registry': DEFAULT_ACCOUNT_REGISTRY,
            'implementation': DEFAULT_ACCOUNT_IMPLEMENTATION,
        }
    return dict(defaults)


def get_import_config() -> Dict[str, Any]:
    """
    Get import engine configuration.

    Values come from environment variables and are then overridden by the
    TOKEN_IMPORT Django setting when it is present.
    """
    chain_id = int(os.getenv('TOKEN_IMPORT_CHAIN_ID', '1'))
    account_defaults = get_nested_account_defaults(chain_id)

    config = {
        'chain_id': chain_id,
        'max_batch_size': int(os.getenv('TOKEN_IMPORT_MAX_BATCH_SIZE', str(DEFAULT_MAX_BATCH_SIZE))),

        # Nested-ownership account parameters
        'nested_account': {
            'registry': os.getenv('TOKEN_IMPORT_ACCOUNT_REGISTRY', account_defaults['registry']),
            'implementation': os.getenv(
                'TOKEN_IMPORT_ACCOUNT_IMPLEMENTATION', account_defaults['implementation']
            ),
            'salt': int(os.getenv('TOKEN_IMPORT_ACCOUNT_SALT', '0')),
        },

        # Origin lookup behaviour
        'lookup': {
            'read_retry_attempts': int(os.getenv('TOKEN_IMPORT_READ_RETRY_ATTEMPTS', '3')),
            'read_retry_wait_seconds': float(os.getenv('TOKEN_IMPORT_READ_RETRY_WAIT', '0.5')),
            'use_admission_index': os.getenv('TOKEN_IMPORT_USE_ADMISSION_INDEX', 'true').lower() == 'true',
        },

        'logging': {
            'level': os.getenv('TOKEN_IMPORT_LOG_LEVEL', 'INFO').upper(),
            'json': os.getenv('TOKEN_IMPORT_LOG_JSON', 'false').lower() == 'true',
        },
    }

    overrides = getattr(settings, 'TOKEN_IMPORT', None) if settings.configured else None
    if overrides:
        config = _merge(config, overrides)

    return config


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
