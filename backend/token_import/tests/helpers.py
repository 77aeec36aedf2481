"""
Shared fixtures for the import engine tests.
"""

from ..clients import LocalAccountRegistry, LocalDestinationRegistry
from ..config import get_import_config
from ..migration.records import ImportRecord

REGISTRY_ADDRESS = '0x' + '11' * 20
ACCOUNT_REGISTRY_ADDRESS = '0x' + '22' * 20
IMPLEMENTATION_ADDRESS = '0x' + '33' * 20
RECIPIENT = '0x' + 'aa' * 20
CREATOR = '0x' + 'bb' * 20
ACTOR = '0x' + 'cc' * 20
ADMIN = '0x' + 'dd' * 20
OTHER = '0x' + 'ee' * 20


def make_config(**overrides):
    config = get_import_config()
    config['chain_id'] = 1
    config['nested_account']['implementation'] = IMPLEMENTATION_ADDRESS
    config['nested_account']['salt'] = 0
    config['lookup']['read_retry_attempts'] = 2
    config['lookup']['read_retry_wait_seconds'] = 0
    config.update(overrides)
    return config


def make_record(origin_tag='0xC/1', **fields):
    values = {
        'metadata_uri': 'ipfs://x',
        'recipient': RECIPIENT,
        'creator': CREATOR,
        'origin_tag': origin_tag,
        'soul_bound': False,
        'royalty_rate': 10,
    }
    values.update(fields)
    return ImportRecord(**values)


def make_registries():
    return (
        LocalDestinationRegistry(REGISTRY_ADDRESS),
        LocalAccountRegistry(ACCOUNT_REGISTRY_ADDRESS),
    )
