"""
监控数据类型定义

定义事件解码、连接状态和健康度报告使用的数据结构
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from hexbytes import HexBytes


class ConnectionState(Enum):
    """节点连接状态"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    TERMINATED = "terminated"


class SubscriptionKind(Enum):
    """节点订阅类型"""
    NEW_HEADS = "newHeads"
    LOGS = "logs"


@dataclass(frozen=True)
class EventSignature:
    """事件签名：名称 + 有序参数类型"""
    name: str
    param_types: Tuple[str, ...]
    topic: bytes
    indexed: Optional[Tuple[bool, ...]] = None

    @property
    def signature(self) -> str:
        """规范化的签名文本，例如 Transfer(address,address,uint256)"""
        return f"{self.name}({','.join(self.param_types)})"

    @property
    def indexed_count(self) -> Optional[int]:
        if self.indexed is None:
            return None
        return sum(self.indexed)

    def __str__(self) -> str:
        return self.signature


def _to_bytes(value) -> bytes:
    if value is None:
        return b""
    return bytes(HexBytes(value))


@dataclass(frozen=True)
class RawLog:
    """节点推送的原始日志"""
    address: str
    topics: Tuple[bytes, ...]
    data: bytes

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'RawLog':
        """从节点返回的日志字典构造，兼容十六进制字符串和字节"""
        return cls(
            address=payload.get('address', ''),
            topics=tuple(_to_bytes(topic) for topic in payload.get('topics', [])),
            data=_to_bytes(payload.get('data')),
        )


@dataclass(frozen=True)
class DecodedEvent:
    """解码后的事件"""
    address: str
    event_name: str
    values: List[Any] = field(default_factory=list)
    signature: str = ""

    def __str__(self) -> str:
        return f"DecodedEvent({self.event_name} @ {self.address}, values={self.values})"


@dataclass
class VitalsReport:
    """单个 gcToken 的健康度报告"""
    symbol: str
    lending: str
    borrowing: str
    collateralization_ratio: str

    def to_line(self) -> str:
        """Telegram HTML 格式的一行报告"""
        return f"<b>{self.symbol}</b> <i>{self.collateralization_ratio}</i>"
