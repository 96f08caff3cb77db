"""
节点连接管理器

负责 WebSocket 连接的建立、消息泵送和断线重连：
- 连接被正常关闭（ended）：立即重连，不做退避，不限次数
- 连接出错（error）：视为不可恢复，交给错误策略（默认终止进程）
每次连接成功后通知监听者，订阅管理器借此在新连接上重新发起订阅。
"""

from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Protocol

from web3 import AsyncWeb3
from web3.exceptions import PersistentConnectionClosedOK
from web3.providers.persistent import WebSocketProvider
from websockets.exceptions import ConnectionClosedOK

from evm_vitals_monitor.core.error_policy import ErrorPolicy, FailFastPolicy
from evm_vitals_monitor.core.errors import TransportEnded, TransportError
from evm_vitals_monitor.models.data_types import ConnectionState, SubscriptionKind
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)

# 这些异常表示连接被正常关闭，可以重连
ENDED_EXCEPTIONS = (TransportEnded, ConnectionClosedOK, PersistentConnectionClosedOK)


class Transport(Protocol):
    """节点订阅协议的最小接口"""

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def subscribe(self, kind: SubscriptionKind, params: Optional[Dict[str, Any]] = None) -> str: ...

    async def unsubscribe(self, subscription_id: str) -> bool: ...

    def messages(self) -> AsyncIterator[Dict[str, Any]]: ...


class ConnectionListener(Protocol):
    async def on_connected(self, transport: Transport) -> None: ...

    async def dispatch(self, message: Dict[str, Any]) -> None: ...


class Web3SocketTransport:
    """基于 AsyncWeb3 + WebSocketProvider 的节点连接"""

    def __init__(self, ws_url: str, websocket_kwargs: Optional[Dict[str, Any]] = None):
        self.ws_url = ws_url
        self.websocket_kwargs = websocket_kwargs
        self.w3: Optional[AsyncWeb3] = None

    async def open(self) -> None:
        self.w3 = await AsyncWeb3(WebSocketProvider(self.ws_url, websocket_kwargs=self.websocket_kwargs))

    async def close(self) -> None:
        if self.w3 is not None:
            await self.w3.provider.disconnect()

    async def subscribe(self, kind: SubscriptionKind, params: Optional[Dict[str, Any]] = None) -> str:
        if params is None:
            return await self.w3.eth.subscribe(kind.value)
        return await self.w3.eth.subscribe(kind.value, params)

    async def unsubscribe(self, subscription_id: str) -> bool:
        return await self.w3.eth.unsubscribe(subscription_id)

    async def messages(self) -> AsyncIterator[Dict[str, Any]]:
        async for payload in self.w3.socket.process_subscriptions():
            yield payload

    def __str__(self) -> str:
        return f"Web3SocketTransport({self.ws_url})"


class ConnectionSupervisor:
    """节点连接监督者 - 唯一允许替换当前连接对象的组件"""

    def __init__(
        self,
        transport_factory: Callable[[], Transport],
        error_policy: Optional[ErrorPolicy] = None,
    ):
        """
        初始化连接监督者

        Args:
            transport_factory: 每次（重）连接时调用，返回一个新的连接对象
            error_policy: 连接出错时的处理策略，默认 fail-fast
        """
        self.transport_factory = transport_factory
        self.error_policy = error_policy or FailFastPolicy()

        self.state = ConnectionState.DISCONNECTED
        self.state_history: List[ConnectionState] = [self.state]
        self.transport: Optional[Transport] = None
        self.fatal_error: Optional[TransportError] = None
        self.connect_attempts = 0
        self.reconnects = 0
        self._listeners: List[ConnectionListener] = []
        self._running = False

    def add_listener(self, listener: ConnectionListener) -> None:
        """注册连接监听者：连接成功时回调 on_connected，收到订阅消息时回调 dispatch"""
        self._listeners.append(listener)

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        logger.debug(f"连接状态: {self.state.value} => {state.value}")
        self.state = state
        self.state_history.append(state)

    async def connect(self) -> Transport:
        """建立一个新连接，替换当前连接对象"""
        self._set_state(ConnectionState.CONNECTING)
        await self._close_previous()
        self.connect_attempts += 1
        transport = self.transport_factory()
        self.transport = transport
        logger.info(f"🔌 正在连接节点 (第 {self.connect_attempts} 次): {transport}")
        await transport.open()
        self._set_state(ConnectionState.CONNECTED)
        logger.info("✅ 节点连接成功")

        for listener in self._listeners:
            await listener.on_connected(transport)
        return transport

    async def _close_previous(self) -> None:
        """释放上一个连接；旧连接往往已经失效，关闭失败只记录日志"""
        previous, self.transport = self.transport, None
        if previous is None:
            return
        try:
            await previous.close()
        except Exception as e:
            logger.warning(f"关闭旧连接失败 ({previous}): {e!r}")

    async def run(self) -> None:
        """
        连接并持续泵送订阅消息，直到 stop() 或发生致命错误

        监听者抛出的异常（例如 fail-fast 策略下的 HandlerFailure）直接向上传播，
        只有连接本身抛出的异常才会被归类为 ended / error。

        Raises:
            TransportError: fail-fast 策略下连接出错
        """
        self._running = True
        while self._running:
            if not self.is_connected:
                try:
                    await self.connect()
                except ENDED_EXCEPTIONS as e:
                    self._on_ended(e)
                    continue
                except Exception as e:
                    self._on_error(e)
                    continue

            stream = self.transport.messages()
            while self._running:
                try:
                    message = await stream.__anext__()
                except StopAsyncIteration:
                    self._on_ended(None)
                    break
                except ENDED_EXCEPTIONS as e:
                    self._on_ended(e)
                    break
                except Exception as e:
                    self._on_error(e)
                    break

                for listener in self._listeners:
                    await listener.dispatch(message)

    def _on_ended(self, reason: Optional[BaseException]) -> None:
        """连接被关闭：回到 CONNECTING，由 run() 立即重连"""
        if not self._running:
            return
        self.reconnects += 1
        logger.warning(f"🔄 节点连接已关闭 ({reason or 'stream ended'})，立即重连 (第 {self.reconnects} 次)")
        self._set_state(ConnectionState.CONNECTING)

    def _on_error(self, exc: BaseException) -> None:
        """连接出错：进入 TERMINATED；log_and_continue 策略下改为重连"""
        error = TransportError(f"节点连接错误: {exc!r}")
        error.__cause__ = exc
        self.fatal_error = error
        self._set_state(ConnectionState.TERMINATED)
        if self.error_policy.fail_fast:
            self._running = False
        self.error_policy.handle(error)

        self.fatal_error = None
        self._on_ended(exc)

    async def stop(self) -> None:
        """停止消息泵送并关闭当前连接"""
        self._running = False
        if self.transport is not None and self.state == ConnectionState.CONNECTED:
            await self.transport.close()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("节点连接已关闭")

    def get_status(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'connect_attempts': self.connect_attempts,
            'reconnects': self.reconnects,
            'fatal_error': str(self.fatal_error) if self.fatal_error else None,
        }
