"""
启动信息记录模块

负责记录监控器启动时的详细信息和配置状态
"""

from typing import Sequence

from evm_vitals_monitor.config.monitor_config import MonitorConfig
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class StartupLogger:
    """启动信息记录器"""

    def __init__(self, config: MonitorConfig):
        self.config = config

    def log_startup_info(self, tokens: Sequence = ()) -> None:
        """记录启动信息"""
        logger.info(f"🚀 开始监控储备健康度 | 网络: {self.config.network} (id {self.config.network_id})")
        self._log_basic_config()
        self._log_tokens(tokens)

    def _log_basic_config(self) -> None:
        logger.info(f"🔗 HTTP URL: {self._mask(self.config.http_url)}")
        logger.info(f"🔌 WebSocket URL: {self._mask(self.config.ws_url)}")
        logger.info(f"⏱️ 报告间隔: {self.config.report_interval} 秒")
        logger.info(f"🛡️ 错误策略: {self.config.error_policy}")

    def _log_tokens(self, tokens: Sequence) -> None:
        if not tokens:
            names = ", ".join(token.get('name') or token.get('address') for token in self.config.tokens)
            logger.info(f"📋 监控代币: {names}")
            return
        logger.info(f"📋 监控代币数量: {len(tokens)}")
        for i, token in enumerate(tokens, 1):
            logger.info(f"   {i}. {token.symbol} ({token.address})")

    def _mask(self, url: str) -> str:
        # 日志中不输出 Infura 项目 id
        project_id = self.config.infura_project_id
        if project_id and project_id in url:
            return url.replace(project_id, '***')
        return url
