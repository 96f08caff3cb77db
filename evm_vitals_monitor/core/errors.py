"""
监控器异常定义

按照处理方式划分：
- 可恢复：InvalidAmount（调用方拒绝输入）、UnknownEvent（静默丢弃）、TransportEnded（立即重连）
- 致命：DuplicateSignature、InvalidSignature、ConfigurationError（启动失败），
  TransportError、HandlerFailure（交给错误策略处理，默认终止进程）
"""

from typing import Optional


class VitalsMonitorError(Exception):
    """所有监控器异常的基类"""


class ConfigurationError(VitalsMonitorError):
    """配置缺失或非法"""


class InvalidAmount(VitalsMonitorError, ValueError):
    """金额字符串格式不正确"""

    def __init__(self, amount, decimals=None):
        self.amount = amount
        self.decimals = decimals
        super().__init__(f"Invalid amount: {amount!r} (decimals={decimals})")


class InvalidSignature(VitalsMonitorError, ValueError):
    """事件签名文本无法解析"""


class DuplicateSignature(VitalsMonitorError):
    """两个事件签名的哈希相同"""

    def __init__(self, topic: str, first: str, second: str):
        self.topic = topic
        self.first = first
        self.second = second
        super().__init__(f"事件签名重复: {first} 与 {second} 的哈希均为 {topic}")


class UnknownEvent(VitalsMonitorError):
    """日志的签名哈希不在签名表中"""

    def __init__(self, topic: Optional[str]):
        self.topic = topic
        super().__init__(f"未知事件: {topic}")


class InvalidLog(VitalsMonitorError):
    """日志内容与声明的参数类型不匹配"""


class TransportError(VitalsMonitorError):
    """节点连接错误，不可恢复"""


class TransportEnded(VitalsMonitorError):
    """节点连接被关闭，可以重连"""


class HandlerFailure(VitalsMonitorError):
    """处理区块/日志的回调抛出了异常"""

    def __init__(self, kind: str, error: BaseException):
        self.kind = kind
        self.error = error
        super().__init__(f"{kind} 回调处理失败: {error!r}")


class NotificationError(VitalsMonitorError):
    """通知最终发送失败"""
