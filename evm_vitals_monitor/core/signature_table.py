"""
事件签名表与日志解码器

签名表把事件签名哈希映射到 (事件名, 参数类型列表)。
解码时约定 indexed 参数一定位于参数列表的前缀：
topics[1:] 依次按前 N 个类型解码，剩余类型作为一个整体从 data 中解码。
"""

import re
from typing import Dict, Iterable, Iterator, List, Optional

from eth_abi import decode as abi_decode, is_encodable_type
from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes
from web3 import Web3

from evm_vitals_monitor.core.errors import (
    DuplicateSignature,
    InvalidLog,
    InvalidSignature,
    UnknownEvent,
)
from evm_vitals_monitor.models.data_types import DecodedEvent, EventSignature, RawLog
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)

_SIGNATURE_PATTERN = re.compile(r"\s*([A-Za-z_$][A-Za-z0-9_$]*)\s*\((.*)\)\s*")


def _is_hashed_when_indexed(param_type: str) -> bool:
    # 引用类型作为 indexed 参数时，topic 中存放的是其 keccak 哈希
    return param_type in ('string', 'bytes') or '[' in param_type or param_type.startswith('(')


def _decode_topic(param_type: str, word: bytes):
    if _is_hashed_when_indexed(param_type):
        return HexBytes(word)
    return abi_decode([param_type], word)[0]


def parse_signature(text: str) -> EventSignature:
    """
    解析事件签名文本

    支持两种写法：
        Transfer(address,address,uint256)
        Transfer(address indexed from,address indexed to,uint256 value)
    第二种写法显式声明了 indexed 参数，要求它们连续位于参数列表最前面。

    Raises:
        InvalidSignature: 签名格式错误或 indexed 参数不是前缀
    """
    match = _SIGNATURE_PATTERN.fullmatch(text)
    if not match:
        raise InvalidSignature(f"无效的事件签名: {text!r}")
    name, args = match.groups()

    param_types: List[str] = []
    indexed: List[bool] = []
    if args.strip():
        for raw_param in args.split(','):
            tokens = raw_param.split()
            if not tokens or len(tokens) > 3:
                raise InvalidSignature(f"无效的事件参数 {raw_param!r}: {text!r}")
            if not is_encodable_type(tokens[0]):
                raise InvalidSignature(f"未知的参数类型 {tokens[0]!r}: {text!r}")
            param_types.append(tokens[0])
            indexed.append(len(tokens) > 1 and tokens[1] == 'indexed')

    mask = tuple(indexed) if any(indexed) else None
    if mask is not None:
        prefix = mask.index(False) if False in mask else len(mask)
        if any(mask[prefix:]):
            raise InvalidSignature(f"indexed 参数必须位于参数列表最前面: {text!r}")

    canonical = f"{name}({','.join(param_types)})"
    return EventSignature(
        name=name,
        param_types=tuple(param_types),
        topic=bytes(Web3.keccak(text=canonical)),
        indexed=mask,
    )


class SignatureTable:
    """签名哈希 -> 事件签名 的只读映射"""

    def __init__(self, signatures: Iterable[str]):
        self._table: Dict[bytes, EventSignature] = {}
        self._sources: Dict[bytes, str] = {}
        for text in signatures:
            event = parse_signature(text)
            if event.topic in self._table:
                raise DuplicateSignature(Web3.to_hex(event.topic), self._sources[event.topic], text)
            self._table[event.topic] = event
            self._sources[event.topic] = text
        logger.debug(f"签名表已构建: {[str(event) for event in self._table.values()]}")

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self) -> Iterator[EventSignature]:
        return iter(self._table.values())

    def __contains__(self, topic) -> bool:
        return bytes(topic) in self._table

    def get(self, topic: bytes) -> Optional[EventSignature]:
        return self._table.get(bytes(topic))

    def lookup(self, topic: bytes) -> EventSignature:
        event = self.get(topic)
        if event is None:
            raise UnknownEvent(Web3.to_hex(topic) if topic else None)
        return event

    @property
    def topics(self) -> List[str]:
        """按注册顺序返回十六进制签名哈希，用于节点订阅过滤"""
        return [Web3.to_hex(topic) for topic in self._table]

    def topic_filter(self) -> Dict[str, List[List[str]]]:
        """第一个 topic 匹配任意已注册签名"""
        return {'topics': [self.topics]}


class LogDecoder:
    """根据签名表解码原始日志"""

    def __init__(self, table: SignatureTable):
        self.table = table

    def decode(self, log: RawLog) -> DecodedEvent:
        """
        解码一条日志

        Raises:
            UnknownEvent: 签名哈希未注册
            InvalidLog: topics/data 与声明的参数不匹配
        """
        if not log.topics:
            raise UnknownEvent(None)
        topic, words = log.topics[0], log.topics[1:]
        event = self.table.lookup(topic)

        if len(words) > len(event.param_types):
            raise InvalidLog(
                f"{event.signature} 只有 {len(event.param_types)} 个参数，但日志带有 {len(words)} 个 indexed topic"
            )
        if event.indexed_count is not None and event.indexed_count != len(words):
            raise InvalidLog(
                f"{event.signature} 声明了 {event.indexed_count} 个 indexed 参数，但日志带有 {len(words)} 个"
            )

        try:
            values = [
                _decode_topic(param_type, word)
                for param_type, word in zip(event.param_types, words)
            ]
            remaining = list(event.param_types[len(words):])
            if remaining:
                values.extend(abi_decode(remaining, log.data))
        except DecodingError as e:
            raise InvalidLog(f"{event.signature} 解码失败: {e}") from e

        return DecodedEvent(
            address=log.address,
            event_name=event.name,
            values=values,
            signature=event.signature,
        )
