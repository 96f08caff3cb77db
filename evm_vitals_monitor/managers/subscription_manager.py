"""
区块/日志订阅管理器

订阅以声明式描述符的形式保存在注册表中（本地 id -> 描述符），
另维护一个索引（节点订阅 id -> 本地 id）。每次连接建立后，
连接监督者回调 on_connected，所有仍然有效的订阅会在新连接上重新发起，
因此断线重连不会让订阅静默失效。
"""

import asyncio
import itertools
from typing import Any, Callable, Dict, Iterable, List, Optional

from evm_vitals_monitor.core.error_policy import ErrorPolicy
from evm_vitals_monitor.core.errors import HandlerFailure, TransportError, UnknownEvent
from evm_vitals_monitor.core.signature_table import LogDecoder, SignatureTable
from evm_vitals_monitor.managers.connection_manager import ConnectionSupervisor, Transport
from evm_vitals_monitor.models.data_types import RawLog, SubscriptionKind
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)

BlockHandler = Callable[[int], Any]
LogHandler = Callable[[str, str, List[Any]], Any]


class Subscription:
    """一个订阅描述符，跨重连保持有效，直到 cancel()"""

    def __init__(
        self,
        manager: 'SubscriptionManager',
        local_id: int,
        kind: SubscriptionKind,
        handler: Callable[..., Any],
        params: Optional[Dict[str, Any]] = None,
        decoder: Optional[LogDecoder] = None,
    ):
        self.manager = manager
        self.local_id = local_id
        self.kind = kind
        self.handler = handler
        self.params = params
        self.decoder = decoder
        self.subscription_id: Optional[str] = None
        self.active = True
        self.delivered = 0
        self.dropped = 0

    async def cancel(self) -> None:
        """取消订阅；节点退订失败视为连接错误"""
        await self.manager.cancel(self)

    def __repr__(self) -> str:
        return (f"Subscription(id={self.local_id}, kind={self.kind.value}, "
                f"subscription_id={self.subscription_id}, active={self.active})")


class SubscriptionManager:
    """在连接监督者之上管理 newHeads / logs 订阅"""

    def __init__(self, supervisor: ConnectionSupervisor, error_policy: Optional[ErrorPolicy] = None):
        self.supervisor = supervisor
        self.error_policy = error_policy or supervisor.error_policy
        self._registry: Dict[int, Subscription] = {}
        self._index: Dict[str, int] = {}
        self._ids = itertools.count(1)
        supervisor.add_listener(self)

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._registry.values())

    async def subscribe_blocks(self, handler: BlockHandler) -> Subscription:
        """订阅新区块头，每个区块以区块号回调 handler"""
        subscription = Subscription(self, next(self._ids), SubscriptionKind.NEW_HEADS, handler)
        return await self._register(subscription)

    async def subscribe_logs(self, signatures: Iterable[str], handler: LogHandler) -> Subscription:
        """
        订阅匹配任一事件签名的日志

        Args:
            signatures: 事件签名列表，如 ["Transfer(address,address,uint256)"]
            handler: handler(address, event_name, values)

        Raises:
            DuplicateSignature: 签名哈希重复
            InvalidSignature: 签名无法解析
        """
        table = SignatureTable(signatures)
        subscription = Subscription(
            self,
            next(self._ids),
            SubscriptionKind.LOGS,
            handler,
            params=table.topic_filter(),
            decoder=LogDecoder(table),
        )
        return await self._register(subscription)

    async def _register(self, subscription: Subscription) -> Subscription:
        self._registry[subscription.local_id] = subscription
        if self.supervisor.is_connected:
            await self._issue(self.supervisor.transport, subscription)
        else:
            logger.info(f"⏳ 节点尚未连接，{subscription.kind.value} 订阅将在连接建立后发起")
        return subscription

    async def _issue(self, transport: Transport, subscription: Subscription) -> None:
        subscription.subscription_id = await transport.subscribe(subscription.kind, subscription.params)
        self._index[subscription.subscription_id] = subscription.local_id
        logger.info(f"📡 已订阅 {subscription.kind.value} (subscription_id={subscription.subscription_id})")

    async def on_connected(self, transport: Transport) -> None:
        """新连接建立：旧连接上的订阅 id 全部作废，重新发起所有有效订阅"""
        self._index.clear()
        for subscription in self._registry.values():
            subscription.subscription_id = None
        if self._registry:
            logger.info(f"🔁 在新连接上重新发起 {len(self._registry)} 个订阅")
        for subscription in list(self._registry.values()):
            await self._issue(transport, subscription)

    async def dispatch(self, message: Dict[str, Any]) -> None:
        """把一条订阅消息交给对应的订阅处理"""
        local_id = self._index.get(message.get('subscription'))
        subscription = self._registry.get(local_id) if local_id is not None else None
        if subscription is None:
            logger.debug(f"忽略未知订阅的消息: {message.get('subscription')}")
            return

        result = message.get('result') or {}
        if subscription.kind == SubscriptionKind.NEW_HEADS:
            number = result['number']
            if isinstance(number, str):
                number = int(number, 16)
            await self._deliver(subscription, 'block', number)
        else:
            await self._deliver_log(subscription, result)

    async def _deliver_log(self, subscription: Subscription, payload: Dict[str, Any]) -> None:
        try:
            event = subscription.decoder.decode(RawLog.from_payload(payload))
        except UnknownEvent as e:
            subscription.dropped += 1
            logger.debug(f"丢弃未注册事件的日志: {e.topic}")
            return
        except Exception as e:
            failure = HandlerFailure('log', e)
            failure.__cause__ = e
            self.error_policy.handle(failure)
            return
        await self._deliver(subscription, 'log', event.address, event.event_name, event.values)

    async def _deliver(self, subscription: Subscription, kind: str, *args) -> None:
        try:
            result = subscription.handler(*args)
            if asyncio.iscoroutine(result):
                await result
            subscription.delivered += 1
        except Exception as e:
            failure = HandlerFailure(kind, e)
            failure.__cause__ = e
            self.error_policy.handle(failure)

    async def cancel(self, subscription: Subscription) -> None:
        """
        在当前连接上退订

        Raises:
            TransportError: fail-fast 策略下节点退订失败
        """
        if not subscription.active:
            return
        subscription.active = False
        self._registry.pop(subscription.local_id, None)
        subscription_id = subscription.subscription_id
        if subscription_id is None:
            return
        self._index.pop(subscription_id, None)
        subscription.subscription_id = None
        if not self.supervisor.is_connected:
            # 旧连接上的订阅 id 已随连接失效，新连接也不会再发起它
            logger.info(f"🛑 节点未连接，直接移除 {subscription.kind.value} 订阅 (subscription_id={subscription_id})")
            return

        try:
            success = await self.supervisor.transport.unsubscribe(subscription_id)
        except Exception as e:
            error = TransportError(f"退订 {subscription_id} 失败: {e!r}")
            error.__cause__ = e
            self.error_policy.handle(error)
            return
        if not success:
            self.error_policy.handle(TransportError(f"节点拒绝退订 {subscription_id}"))
            return
        logger.info(f"🛑 已退订 {subscription.kind.value} (subscription_id={subscription_id})")
