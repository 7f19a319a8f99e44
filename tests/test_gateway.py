"""
Unit tests for reference records and the data gateways.

The Supabase gateway is exercised against a small in-memory stand-in for the
client's query builder; no network access is needed.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pandas as pd
import pytest

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stripscan.config import GATEWAY
from stripscan.data.records import HistoryRecord, ReferenceRecord
from stripscan.gateway import (
    CSVReferenceGateway,
    GatewayError,
    GatewaySettings,
    NullGateway,
    create_gateway,
    safe_read,
)
from stripscan.gateway import supabase_gateway
from stripscan.gateway.supabase_gateway import SupabaseGateway


# =============================================================================
# Fixtures
# =============================================================================

class FakeQuery:
    """Records chained query-builder calls and returns canned rows."""

    def __init__(self, table, rows, calls):
        self.table = table
        self.rows = rows
        self.calls = calls

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((self.table, name, args, kwargs))
            return self
        return method

    def execute(self):
        self.calls.append((self.table, 'execute', (), {}))
        return SimpleNamespace(data=self.rows)


class FakeSupabaseClient:
    def __init__(self, tables=None, user_id=None):
        self.tables = tables or {}
        self.calls = []
        user = SimpleNamespace(id=user_id) if user_id else None
        self.auth = SimpleNamespace(get_user=lambda: SimpleNamespace(user=user))

    def table(self, name):
        return FakeQuery(name, self.tables.get(name, []), self.calls)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all gateway environment variables."""
    names = (
        GATEWAY.ENV_SUPABASE_URL,
        *GATEWAY.ENV_SUPABASE_KEYS,
        GATEWAY.ENV_REFERENCE_CSV,
        GATEWAY.ENV_HISTORY_CSV,
        GATEWAY.ENV_USER_ID,
        GATEWAY.ENV_TIMEOUT,
    )
    for name in names:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def reference_csv(tmp_path):
    """UCI-style reference export with three cases."""
    path = tmp_path / "CTG.csv"
    pd.DataFrame({
        'LB': [120, 132, 141],
        'AC': [0.0, 0.006, 0.0],
        'DS': [0, 0, 1],
        'ASTV': [73, 17, 60],
        'MSTV': [0.5, 2.1, None],
        'CLASS': [9, 6, 10],
        'NSP': [2, 1, 3],
    }).to_csv(path, index=False)
    return path


@pytest.fixture
def history_csv(tmp_path):
    path = tmp_path / "history.csv"
    pd.DataFrame({
        'user_id': ['alice', 'bob', 'alice', 'alice'],
        'baseline_value': [130, 99, 140, 120],
        'created_at': [
            '2024-01-01T10:00:00Z',
            '2024-01-05T10:00:00Z',
            '2024-01-03T10:00:00Z',
            '2024-01-02T10:00:00Z',
        ],
    }).to_csv(path, index=False)
    return path


# =============================================================================
# Record Tests
# =============================================================================

class TestRecords:
    """Tests for record parsing from loosely typed rows."""

    def test_uci_aliases(self):
        record = ReferenceRecord.from_mapping({'LB': 120, 'MSTV': '0.5', 'CLASS': '9', 'NSP': 2.0})

        assert record.baseline_value == 120.0
        assert record.mean_short_term_variability == 0.5
        assert record.pattern_class == 9
        assert record.fetal_state == 2
        assert record.is_abnormal is True

    def test_snake_case_columns(self):
        record = ReferenceRecord.from_mapping({
            'id': 17,
            'mean_short_term_variability': 1.2,
            'severe_decelerations': 0,
            'fetal_state': 1,
        })

        assert record.mean_short_term_variability == 1.2
        assert record.severe_decelerations == 0.0
        assert record.is_normal is True

    def test_missing_values_become_none(self):
        record = ReferenceRecord.from_mapping({'MSTV': float('nan'), 'CLASS': 'n/a', 'NSP': None})

        assert record.mean_short_term_variability is None
        assert record.pattern_class is None
        assert record.fetal_state is None
        assert record.is_abnormal is False

    def test_history_record_parses_timestamp(self):
        record = HistoryRecord.from_mapping({'baseline_value': '132', 'created_at': '2024-03-01T08:30:00Z'})

        assert record.baseline_value == 132.0
        assert record.created_at == datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)

    def test_history_record_tolerates_garbage(self):
        record = HistoryRecord.from_mapping({'baseline_value': 'high', 'created_at': 'yesterday-ish'})

        assert record.baseline_value is None
        assert record.created_at is None


# =============================================================================
# safe_read / NullGateway Tests
# =============================================================================

class TestSafeRead:
    """Tests for failure collapsing."""

    def test_success(self):
        result = safe_read("refs", lambda: [1, 2], default=[])
        assert result.ok
        assert result.value == [1, 2]

    def test_exception_becomes_default(self):
        def boom():
            raise ConnectionError("network unreachable")

        result = safe_read("refs", boom, default=[])

        assert not result.ok
        assert result.value == []
        assert "network unreachable" in result.error

    def test_none_becomes_default(self):
        result = safe_read("refs", lambda: None, default=[])
        assert result.ok
        assert result.value == []

    def test_null_gateway(self):
        gateway = NullGateway()

        assert gateway.enabled is False
        assert gateway.fetch_reference_sample() == []
        assert gateway.get_current_user() is None
        assert gateway.fetch_recent_history("anyone") == []


# =============================================================================
# CSV Gateway Tests
# =============================================================================

class TestCSVGateway:
    """Tests for the local CSV gateway."""

    def test_reference_sample(self, reference_csv):
        gateway = CSVReferenceGateway(reference_csv)
        records = gateway.fetch_reference_sample()

        assert len(records) == 3
        assert records[0].pattern_class == 9
        assert records[1].accelerations == pytest.approx(0.006)
        assert records[2].mean_short_term_variability is None
        assert gateway.enabled is True

    def test_reference_limit(self, reference_csv):
        records = CSVReferenceGateway(reference_csv).fetch_reference_sample(limit=2)
        assert [r.fetal_state for r in records] == [2, 1]

    def test_history_filtered_and_sorted(self, reference_csv, history_csv):
        gateway = CSVReferenceGateway(reference_csv, history_path=history_csv, user_id='alice')

        assert gateway.get_current_user() == 'alice'
        history = gateway.fetch_recent_history('alice')

        assert [h.baseline_value for h in history] == [140.0, 120.0, 130.0]
        assert history[0].created_at > history[1].created_at

    def test_history_limit(self, reference_csv, history_csv):
        gateway = CSVReferenceGateway(reference_csv, history_path=history_csv)
        assert [h.baseline_value for h in gateway.fetch_recent_history('alice', limit=1)] == [140.0]

    def test_no_history_file(self, reference_csv):
        assert CSVReferenceGateway(reference_csv).fetch_recent_history('alice') == []

    def test_missing_file_raises(self, tmp_path):
        gateway = CSVReferenceGateway(tmp_path / "missing.csv")
        with pytest.raises(GatewayError):
            gateway.fetch_reference_sample()

    def test_empty_file_raises(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(GatewayError):
            CSVReferenceGateway(path).fetch_reference_sample()

    def test_history_without_baseline_column_raises(self, reference_csv, tmp_path):
        path = tmp_path / "bad_history.csv"
        path.write_text("user_id,value\nalice,1\n")
        gateway = CSVReferenceGateway(reference_csv, history_path=path)
        with pytest.raises(GatewayError):
            gateway.fetch_recent_history('alice')


# =============================================================================
# Supabase Gateway Tests
# =============================================================================

class TestSupabaseGateway:
    """Tests for the Supabase gateway query shapes."""

    def test_reference_query(self):
        client = FakeSupabaseClient(tables={
            'ctg_reference_data': [
                {'id': 1, 'mean_short_term_variability': 0.4, 'pattern_class': 2, 'fetal_state': 1},
                {'id': 2, 'mean_short_term_variability': 1.7, 'pattern_class': 8, 'fetal_state': 3},
            ]
        })
        gateway = SupabaseGateway(client)

        records = gateway.fetch_reference_sample(limit=100)

        assert [r.pattern_class for r in records] == [2, 8]
        assert ('ctg_reference_data', 'select', ('*',), {}) in client.calls
        assert ('ctg_reference_data', 'limit', (100,), {}) in client.calls

    def test_history_query(self):
        client = FakeSupabaseClient(tables={
            'ctg_data': [
                {'baseline_value': 140, 'created_at': '2024-01-03T10:00:00+00:00'},
                {'baseline_value': 120, 'created_at': '2024-01-02T10:00:00+00:00'},
            ]
        })
        gateway = SupabaseGateway(client)

        history = gateway.fetch_recent_history('user-1', limit=5)

        assert [h.baseline_value for h in history] == [140.0, 120.0]
        assert ('ctg_data', 'select', ('baseline_value, created_at',), {}) in client.calls
        assert ('ctg_data', 'eq', ('user_id', 'user-1'), {}) in client.calls
        assert ('ctg_data', 'order', ('created_at',), {'desc': True}) in client.calls
        assert ('ctg_data', 'limit', (5,), {}) in client.calls

    def test_current_user_from_session(self):
        assert SupabaseGateway(FakeSupabaseClient(user_id='abc')).get_current_user() == 'abc'
        assert SupabaseGateway(FakeSupabaseClient()).get_current_user() is None

    def test_fixed_user_id_wins(self):
        gateway = SupabaseGateway(FakeSupabaseClient(user_id='abc'), user_id='fixed')
        assert gateway.get_current_user() == 'fixed'

    def test_unexpected_payload_raises(self):
        client = FakeSupabaseClient(tables={'ctg_reference_data': {'not': 'a list'}})
        with pytest.raises(GatewayError):
            SupabaseGateway(client).fetch_reference_sample()


# =============================================================================
# Settings and Factory Tests
# =============================================================================

class TestSettings:
    """Tests for environment settings and gateway selection."""

    def test_defaults(self, clean_env):
        settings = GatewaySettings.from_env(dotenv=False)

        assert settings.supabase_enabled is False
        assert settings.reference_csv is None
        assert settings.timeout_seconds == GATEWAY.DEFAULT_TIMEOUT_SECONDS

    def test_reads_environment(self, clean_env):
        clean_env.setenv(GATEWAY.ENV_SUPABASE_URL, "https://example.supabase.co")
        clean_env.setenv(GATEWAY.ENV_SUPABASE_KEYS[-1], "secret")
        clean_env.setenv(GATEWAY.ENV_TIMEOUT, "2.5")
        clean_env.setenv(GATEWAY.ENV_USER_ID, "alice")

        settings = GatewaySettings.from_env(dotenv=False)

        assert settings.supabase_enabled is True
        assert settings.supabase_key == "secret"
        assert settings.timeout_seconds == 2.5
        assert settings.user_id == "alice"

    @pytest.mark.parametrize("raw", ["abc", "0", "-3", "inf", "nan"])
    def test_invalid_timeout_uses_default(self, clean_env, raw):
        clean_env.setenv(GATEWAY.ENV_TIMEOUT, raw)
        settings = GatewaySettings.from_env(dotenv=False)
        assert settings.timeout_seconds == GATEWAY.DEFAULT_TIMEOUT_SECONDS

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            GatewaySettings(timeout_seconds=0)

    def test_factory_without_configuration(self):
        assert isinstance(create_gateway(GatewaySettings()), NullGateway)

    def test_factory_csv(self, reference_csv):
        gateway = create_gateway(GatewaySettings(reference_csv=str(reference_csv), user_id='alice'))

        assert isinstance(gateway, CSVReferenceGateway)
        assert gateway.get_current_user() == 'alice'

    def test_factory_supabase(self, monkeypatch):
        client = FakeSupabaseClient()
        created = {}

        def fake_create_client(url, key, options=None):
            created['options'] = options
            return client

        monkeypatch.setattr(supabase_gateway, 'create_client', fake_create_client)

        gateway = create_gateway(GatewaySettings(
            supabase_url="https://x.supabase.co", supabase_key="k", timeout_seconds=1.5
        ))

        assert isinstance(gateway, SupabaseGateway)
        assert gateway.client is client
        assert created['options'].postgrest_client_timeout == 1.5

    def test_factory_supabase_failure_falls_back(self, monkeypatch):
        def broken(url, key, options=None):
            raise RuntimeError("invalid key")

        monkeypatch.setattr(supabase_gateway, 'create_client', broken)

        gateway = create_gateway(GatewaySettings(supabase_url="https://x.supabase.co", supabase_key="k"))

        assert isinstance(gateway, NullGateway)
