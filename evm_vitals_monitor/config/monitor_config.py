"""
监控配置管理模块

统一管理网络、代币、通知和错误策略等配置参数。
优先级：环境变量（含 .env）> config.yml > 内置默认值
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from evm_vitals_monitor.config.base_config import MonitorSettings, NetworkMap, TelegramSettings, get_env
from evm_vitals_monitor.core.errors import ConfigurationError

DEFAULT_NETWORK = 'development'

# 内置网络配置，{infura_project_id} / {test_server} 在加载时替换
DEFAULT_NETWORKS: Dict[str, Dict[str, Any]] = {
    'mainnet': {
        'network_id': '1',
        'http_url': 'https://mainnet.infura.io/v3/{infura_project_id}',
        'ws_url': 'wss://mainnet.infura.io/ws/v3/{infura_project_id}',
    },
    'ropsten': {
        'network_id': '3',
        'http_url': 'https://ropsten.infura.io/v3/{infura_project_id}',
        'ws_url': 'wss://ropsten.infura.io/ws/v3/{infura_project_id}',
    },
    'rinkeby': {
        'network_id': '4',
        'http_url': 'https://rinkeby.infura.io/v3/{infura_project_id}',
        'ws_url': 'wss://rinkeby.infura.io/ws/v3/{infura_project_id}',
    },
    'kovan': {
        'network_id': '42',
        'http_url': 'https://kovan.infura.io/v3/{infura_project_id}',
        'ws_url': 'wss://kovan.infura.io/ws/v3/{infura_project_id}',
    },
    'goerli': {
        'network_id': '5',
        'http_url': 'https://goerli.infura.io/v3/{infura_project_id}',
        'ws_url': 'wss://goerli.infura.io/ws/v3/{infura_project_id}',
    },
    'development': {
        'network_id': '1',
        'http_url': 'http://localhost:8545/',
        'ws_url': 'ws://localhost:8545/',
    },
    'testing': {
        'network_id': '1',
        'http_url': 'http://{test_server}:8545/',
        'ws_url': 'ws://{test_server}:8545/',
    },
}

DEFAULT_TOKENS = ['gcDAI', 'gcUSDC', 'gcUSDT']
ERROR_POLICIES = ('fail_fast', 'log_and_continue')


def _default_tokens() -> List[Dict[str, Any]]:
    tokens = MonitorSettings.get('tokens') or DEFAULT_TOKENS
    return [token if isinstance(token, dict) else {'name': token} for token in tokens]


@dataclass
class MonitorConfig:
    """监控配置类 - 集中管理所有配置参数"""

    # 网络配置
    network: str = DEFAULT_NETWORK
    network_id: str = '1'
    http_url: str = ''
    ws_url: str = ''
    infura_project_id: str = ''

    # 代币配置：[{name: gcDAI, address: 0x...}]，address 缺省时从 build_dir 中的合约构建产物读取
    tokens: List[Dict[str, Any]] = field(default_factory=_default_tokens)
    build_dir: str = MonitorSettings.get('build_dir', 'build/contracts')

    # 报告配置
    report_interval: float = MonitorSettings.get('report_interval', 60)  # 秒
    error_policy: str = MonitorSettings.get('error_policy', 'fail_fast')
    log_blocks: bool = MonitorSettings.get('log_blocks', True)

    # Telegram 通知配置
    telegram_bot_api_key: Optional[str] = None
    telegram_bot_chat_id: Optional[str] = None
    telegram_api_url: str = TelegramSettings.get('api_url', 'https://api.telegram.org')
    notify_timeout: int = TelegramSettings.get('timeout', 30)
    notify_max_retry_attempts: int = TelegramSettings.get('max_retry_attempts', 3)
    notify_retry_delay: float = TelegramSettings.get('retry_delay', 5)

    @classmethod
    def from_network(cls, network: Optional[str] = None) -> 'MonitorConfig':
        """
        通过网络名称创建监控配置实例

        Args:
            network: 网络名称，缺省时读取环境变量 NETWORK，再缺省为 development

        Raises:
            ConfigurationError: 网络不存在
        """
        network = network or get_env('NETWORK', DEFAULT_NETWORK)
        available = cls.get_available_networks()
        if network not in available:
            raise ConfigurationError(f"网络 '{network}' 不存在。可用的网络: {available}")

        network_config = {**DEFAULT_NETWORKS.get(network, {}), **(NetworkMap.get(network) or {})}
        infura_project_id = get_env('INFURA_PROJECT_ID', network_config.get('infura_project_id', ''))
        test_server = get_env('TEST_SERVER', network_config.get('test_server', ''))

        def _url(key: str) -> str:
            template = get_env(key.upper(), network_config.get(key, ''))
            return template.format(infura_project_id=infura_project_id, test_server=test_server)

        return cls(
            network=network,
            network_id=str(network_config.get('network_id', '1')),
            http_url=_url('http_url'),
            ws_url=_url('ws_url'),
            infura_project_id=infura_project_id,
            telegram_bot_api_key=get_env('TELEGRAM_BOT_API_KEY', TelegramSettings.get('bot_api_key')),
            telegram_bot_chat_id=get_env('TELEGRAM_BOT_CHAT_ID', TelegramSettings.get('chat_id')),
            error_policy=get_env('ERROR_POLICY', MonitorSettings.get('error_policy', 'fail_fast')),
        )

    @staticmethod
    def get_available_networks() -> List[str]:
        """获取所有可用的网络名称"""
        return list(dict.fromkeys([*DEFAULT_NETWORKS, *NetworkMap]))

    def validate(self) -> None:
        """
        启动前校验配置，缺少必需项即为致命配置错误

        Raises:
            ConfigurationError: 配置缺失或非法
        """
        if not self.telegram_bot_api_key:
            raise ConfigurationError('Unknown telegram bot api key')
        if not self.telegram_bot_chat_id:
            raise ConfigurationError('Unknown telegram bot chat id')
        if not self.http_url or not self.ws_url:
            raise ConfigurationError(f"网络 '{self.network}' 缺少 http_url 或 ws_url")
        if '.infura.io/' in self.ws_url and not self.infura_project_id:
            raise ConfigurationError(f"网络 '{self.network}' 需要 INFURA_PROJECT_ID")
        if not self.tokens:
            raise ConfigurationError('未配置需要监控的代币')
        for token in self.tokens:
            if not token.get('name') and not token.get('address'):
                raise ConfigurationError(f"代币配置缺少 name/address: {token}")
        if self.report_interval <= 0:
            raise ConfigurationError(f"报告间隔必须大于 0: {self.report_interval}")
        if self.error_policy not in ERROR_POLICIES:
            raise ConfigurationError(f"未知的错误策略: {self.error_policy}，可用策略: {list(ERROR_POLICIES)}")

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式，敏感信息打码"""
        return {
            'network': self.network,
            'network_id': self.network_id,
            'http_url': self.http_url,
            'ws_url': self.ws_url,
            'tokens': [dict(token) for token in self.tokens],
            'build_dir': self.build_dir,
            'report_interval': self.report_interval,
            'error_policy': self.error_policy,
            'log_blocks': self.log_blocks,
            'telegram_bot_api_key': '***' if self.telegram_bot_api_key else None,
            'telegram_bot_chat_id': self.telegram_bot_chat_id,
        }
