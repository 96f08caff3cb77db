"""配置、合约地址加载与错误策略测试"""

import json

import pytest

from evm_vitals_monitor.config.monitor_config import MonitorConfig
from evm_vitals_monitor.core.error_policy import FailFastPolicy, LogAndContinuePolicy, get_error_policy
from evm_vitals_monitor.core.errors import ConfigurationError, TransportError
from evm_vitals_monitor.utils.artifacts import load_deployed_address, resolve_token_addresses

ENV_VARS = (
    'NETWORK', 'INFURA_PROJECT_ID', 'TEST_SERVER', 'HTTP_URL', 'WS_URL',
    'TELEGRAM_BOT_API_KEY', 'TELEGRAM_BOT_CHAT_ID', 'ERROR_POLICY',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('TELEGRAM_BOT_API_KEY', '123:abc')
    monkeypatch.setenv('TELEGRAM_BOT_CHAT_ID', '-1001')


class TestMonitorConfig:

    def test_default_network(self):
        config = MonitorConfig.from_network()
        config.validate()

        assert config.network == 'development'
        assert config.network_id == '1'
        assert config.ws_url == 'ws://localhost:8545/'
        assert config.report_interval == 60
        assert config.error_policy == 'fail_fast'

    def test_network_from_env(self, monkeypatch):
        monkeypatch.setenv('NETWORK', 'kovan')
        monkeypatch.setenv('INFURA_PROJECT_ID', 'abc123')

        config = MonitorConfig.from_network()

        assert config.network_id == '42'
        assert config.http_url == 'https://kovan.infura.io/v3/abc123'
        assert config.ws_url == 'wss://kovan.infura.io/ws/v3/abc123'

    def test_testing_network_uses_test_server(self, monkeypatch):
        monkeypatch.setenv('TEST_SERVER', '10.0.0.5')

        config = MonitorConfig.from_network('testing')

        assert config.http_url == 'http://10.0.0.5:8545/'
        assert config.ws_url == 'ws://10.0.0.5:8545/'

    def test_unknown_network(self):
        with pytest.raises(ConfigurationError):
            MonitorConfig.from_network('nowhere')

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv('TELEGRAM_BOT_API_KEY')
        with pytest.raises(ConfigurationError, match='Unknown telegram bot api key'):
            MonitorConfig.from_network('development').validate()

    def test_missing_chat_id(self, monkeypatch):
        monkeypatch.setenv('TELEGRAM_BOT_CHAT_ID', '')
        with pytest.raises(ConfigurationError, match='Unknown telegram bot chat id'):
            MonitorConfig.from_network('development').validate()

    def test_infura_needs_project_id(self):
        with pytest.raises(ConfigurationError):
            MonitorConfig.from_network('mainnet').validate()

    def test_unknown_error_policy(self, monkeypatch):
        monkeypatch.setenv('ERROR_POLICY', 'retry_forever')
        with pytest.raises(ConfigurationError):
            MonitorConfig.from_network('development').validate()

    def test_non_positive_interval(self):
        config = MonitorConfig.from_network('development')
        config.report_interval = 0
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_to_dict_masks_api_key(self):
        data = MonitorConfig.from_network('development').to_dict()
        assert data['telegram_bot_api_key'] == '***'
        assert data['telegram_bot_chat_id'] == '-1001'


class TestArtifacts:

    def write_artifact(self, build_dir, name, networks):
        (build_dir / f"{name}.json").write_text(json.dumps({'contractName': name, 'networks': networks}))

    def test_load_deployed_address(self, tmp_path):
        self.write_artifact(tmp_path, 'gcDAI', {'1': {'address': '0x4085669d375d7ea9a5a9c1e1a5ea0ae1c4b47c20'}})
        assert load_deployed_address(str(tmp_path), 'gcDAI', '1') == '0x4085669d375d7ea9a5a9c1e1a5ea0ae1c4b47c20'

    def test_missing_network(self, tmp_path):
        self.write_artifact(tmp_path, 'gcDAI', {'42': {'address': '0x01'}})
        with pytest.raises(ConfigurationError):
            load_deployed_address(str(tmp_path), 'gcDAI', '1')

    def test_missing_artifact(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_deployed_address(str(tmp_path), 'gcUSDT', '1')

    def test_resolve_keeps_explicit_addresses(self, tmp_path):
        self.write_artifact(tmp_path, 'gcDAI', {'1': {'address': '0xaaa'}})
        tokens = [{'name': 'gcDAI'}, {'name': 'gcUSDC', 'address': '0xbbb'}]
        assert resolve_token_addresses(tokens, str(tmp_path), '1') == ['0xaaa', '0xbbb']


class TestErrorPolicy:

    def test_lookup_by_name(self):
        assert isinstance(get_error_policy('fail_fast'), FailFastPolicy)
        assert isinstance(get_error_policy('log_and_continue'), LogAndContinuePolicy)

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            get_error_policy('ignore')

    def test_fail_fast_reraises(self):
        error = TransportError("boom")
        with pytest.raises(TransportError) as exc_info:
            FailFastPolicy().handle(error)
        assert exc_info.value is error

    def test_log_and_continue_counts(self):
        policy = LogAndContinuePolicy()
        policy.handle(TransportError("boom"))
        policy.handle(TransportError("boom again"))
        assert policy.errors_seen == 2
