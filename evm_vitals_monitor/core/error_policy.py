"""
错误处理策略

连接错误、回调失败、退订失败都交给错误策略决定后续行为：
- fail_fast: 记录日志后重新抛出，最终由入口函数终止进程（默认）
- log_and_continue: 只记录日志，监控继续运行
"""

from evm_vitals_monitor.core.errors import ConfigurationError, VitalsMonitorError
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class ErrorPolicy:
    """错误策略基类"""

    name = "base"
    fail_fast = True

    def handle(self, error: VitalsMonitorError) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class FailFastPolicy(ErrorPolicy):
    """任何错误都视为致命错误"""

    name = "fail_fast"
    fail_fast = True

    def handle(self, error: VitalsMonitorError) -> None:
        logger.error(f"💥 致命错误: {error}", exc_info=error)
        raise error


class LogAndContinuePolicy(ErrorPolicy):
    """记录错误并继续运行"""

    name = "log_and_continue"
    fail_fast = False

    def __init__(self):
        self.errors_seen = 0

    def handle(self, error: VitalsMonitorError) -> None:
        self.errors_seen += 1
        logger.error(f"⚠️ 发生错误，继续运行 (累计 {self.errors_seen} 次): {error}", exc_info=error)


_POLICIES = {
    FailFastPolicy.name: FailFastPolicy,
    LogAndContinuePolicy.name: LogAndContinuePolicy,
}


def get_error_policy(name: str) -> ErrorPolicy:
    """按名称创建错误策略"""
    try:
        return _POLICIES[name]()
    except KeyError:
        raise ConfigurationError(f"未知的错误策略: {name}，可用策略: {list(_POLICIES)}") from None
