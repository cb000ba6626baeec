"""Tests for CLI configuration module."""

import json
from cli.config import Config


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.chunk-upload' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()

    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3
    assert config.data['retry_backoff_multiplier'] == 2
    assert config.data['chunk_size'] == 2 * 1024 * 1024
    assert config.data['hash_algorithm'] == 'md5'


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.chunk-upload' / 'config.json'
    config_path.parent.mkdir(parents=True)

    existing_data = {
        'server_host': 'example.com',
        'server_port': 9000,
        'chunk_size': 4096,
    }
    with open(config_path, 'w') as f:
        json.dump(existing_data, f)

    config = Config(config_path)

    assert config.get_base_url() == 'http://example.com:9000'
    assert config.get_chunk_size() == 4096

    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3


def test_config_corrupted_file_falls_back_to_defaults(tmp_path):
    """Test that an unreadable config file does not break the CLI."""
    config_path = tmp_path / '.chunk-upload' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{not json')

    config = Config(config_path)

    assert config.get_timeout() == 30
    assert config.get_hash_algorithm() == 'md5'


def test_get_retry_config(temp_config):
    retry_config = temp_config.get_retry_config()

    assert retry_config == {'max_retries': 3, 'retry_backoff_multiplier': 2}
