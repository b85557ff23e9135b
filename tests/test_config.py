import logging

import pytest
from sqlalchemy.pool import StaticPool

from stockledger import create_app
from stockledger.config import EnvReader, _normalize_db_url, _resolve_environment
from stockledger.logging_config import _coerce_level


class TestEnvReader:

    def test_typed_accessors(self):
        reader = EnvReader({
            'NAME': '  ledger  ',
            'BLANK': '   ',
            'POOL': '7',
            'LOCK': 'off',
            'TOLERANCE': '0.05',
        })

        assert reader.str('NAME') == 'ledger'
        assert reader.str('BLANK', 'fallback') == 'fallback'
        assert reader.int('POOL') == 7
        assert reader.bool('LOCK', True) is False
        assert reader.decimal_str('TOLERANCE', '0.01') == '0.05'
        assert reader.warnings == []

    def test_bad_values_fall_back_with_warnings(self):
        reader = EnvReader({'POOL': 'lots', 'LOCK': 'maybe', 'TOLERANCE': 'tiny'})

        assert reader.int('POOL', 3) == 3
        assert reader.bool('LOCK', True) is True
        assert reader.decimal_str('TOLERANCE', '0.01') == '0.01'
        assert len(reader.warnings) == 3


class TestEnvironmentResolution:

    def test_defaults_to_development(self):
        assert _resolve_environment(EnvReader({})).name == 'development'

    def test_flask_env_is_normalized(self):
        info = _resolve_environment(EnvReader({'FLASK_ENV': ' Production '}))
        assert info.name == 'production'
        assert info.source == 'FLASK_ENV'

    def test_unknown_environment(self):
        with pytest.raises(RuntimeError):
            _resolve_environment(EnvReader({'FLASK_ENV': 'qa'}))

    @pytest.mark.parametrize('key', ['APP_ENV', 'STOCKLEDGER_ENV', 'ENVIRONMENT'])
    def test_competing_keys_are_refused(self, key):
        with pytest.raises(RuntimeError):
            _resolve_environment(EnvReader({key: 'production'}))


def test_postgres_scheme_is_normalized():
    assert _normalize_db_url('postgres://u:p@db/ledger') == 'postgresql://u:p@db/ledger'
    assert _normalize_db_url('sqlite:///x.db') == 'sqlite:///x.db'
    assert _normalize_db_url('') is None


def test_in_memory_database_uses_a_single_connection():
    app = create_app({'TESTING': True, 'DATABASE_URL': 'sqlite:///:memory:'})

    options = app.config['SQLALCHEMY_ENGINE_OPTIONS']
    assert options['poolclass'] is StaticPool
    assert 'pool_size' not in options
    assert app.config['DEFAULT_LOCATION_CODE'] == 'DEFAULT'
    assert 'verify-ledger' in app.cli.commands


@pytest.mark.parametrize('raw,expected', [
    ('debug', logging.DEBUG),
    (' warning ', logging.WARNING),
    (logging.ERROR, logging.ERROR),
    ('chatty', logging.INFO),
    (None, logging.INFO),
])
def test_log_level_coercion(raw, expected):
    assert _coerce_level(raw) == expected
