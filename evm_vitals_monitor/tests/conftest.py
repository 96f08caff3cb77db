"""
测试公共夹具

提供可编排的假节点连接、假合约调用和假通知服务，测试不依赖真实节点或网络
"""

import os
import tempfile

# 日志写到临时目录，必须在导入项目模块之前设置
os.environ.setdefault("VITALS_LOG_DIR", os.path.join(tempfile.gettempdir(), "evm_vitals_monitor_tests"))

from typing import Any, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402

from evm_vitals_monitor.models.data_types import SubscriptionKind  # noqa: E402

END = object()


class FakeTransport:
    """
    假节点连接

    script 中的每一项会被依次产出：dict 作为订阅消息，异常实例会被抛出，
    END 表示连接被正常关闭。脚本耗尽时同样视为连接关闭。
    """

    def __init__(self, script: Optional[List[Any]] = None, open_error: Optional[BaseException] = None,
                 unsubscribe_result: Any = True, close_error: Optional[BaseException] = None):
        self.script = list(script or [])
        self.open_error = open_error
        self.unsubscribe_result = unsubscribe_result
        self.close_error = close_error
        self.opened = False
        self.closed = False
        self.subscribed: List[tuple] = []
        self.unsubscribed: List[str] = []

    async def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error

    async def subscribe(self, kind: SubscriptionKind, params: Optional[Dict[str, Any]] = None) -> str:
        subscription_id = f"0x{id(self):x}{len(self.subscribed)}"
        self.subscribed.append((kind, params, subscription_id))
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        self.unsubscribed.append(subscription_id)
        if isinstance(self.unsubscribe_result, BaseException):
            raise self.unsubscribe_result
        return self.unsubscribe_result

    async def messages(self):
        while self.script:
            item = self.script.pop(0)
            if item is END:
                return
            if isinstance(item, BaseException):
                raise item
            if callable(item):
                item = item(self)
            yield item


class TransportFactory:
    """按顺序返回预先准备好的连接，多余的连接尝试直接判定测试失败"""

    def __init__(self, *transports: FakeTransport):
        self.pending = list(transports)
        self.created: List[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        if not self.pending:
            pytest.fail("unexpected connection attempt")
        transport = self.pending.pop(0)
        self.created.append(transport)
        return transport


class FakeContract:
    def __init__(self, address: str):
        self.address = address


class FakeRPC:
    """
    假 RPC 管理器

    responses: {address: {method: value}}，value 可以是可调用对象（接收参数）
    """

    def __init__(self, responses: Dict[str, Dict[str, Any]]):
        self.responses = responses
        self.calls: List[tuple] = []

    def contract(self, address: str, abi):
        return FakeContract(address)

    async def call(self, contract: FakeContract, method: str, *args) -> Any:
        self.calls.append((contract.address, method, args))
        value = self.responses[contract.address][method]
        return value(*args) if callable(value) else value


class FakeNotifier:
    def __init__(self, error: Optional[BaseException] = None):
        self.messages: List[str] = []
        self.error = error

    async def send_message(self, text: str) -> Dict[str, Any]:
        if self.error is not None:
            raise self.error
        self.messages.append(text)
        return {'success': True}


DAI = "0x6b175474e89094c44da98b954eedeac495271d0f"
GCDAI = "0x4085669d375d7ea9a5a9c1e1a5ea0ae1c4b47c20"
CDAI = "0x5d3a536e4d6dbd6114cc1ead35777bab948e3643"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
GCUSDC = "0x8c3bc8bd4e1e2f3c11d8e7b0e7e8e0a1b2c3d4e5"
CUSDC = "0x39aa39c021dfbae8fac545936693ac917d5e7563"


def _erc20(name: str, symbol: str, decimals: int) -> Dict[str, Any]:
    return {'name': name, 'symbol': symbol, 'decimals': decimals}


@pytest.fixture
def chain_responses() -> Dict[str, Dict[str, Any]]:
    """gcDAI(18 位) 与 gcUSDC(6 位底层) 的合约响应"""
    return {
        DAI: _erc20('Dai Stablecoin', 'DAI', 18),
        CDAI: _erc20('Compound Dai', 'cDAI', 8),
        GCDAI: {
            **_erc20('growth cDAI', 'gcDAI', 8),
            'stakesToken': DAI,
            'reserveToken': CDAI,
            'underlyingToken': DAI,
            'totalSupply': 250000000000,
            'balanceOf': lambda owner: 12345678,
            'totalReserve': 150000000000,
            'lendingReserveUnderlying': 1000 * 10 ** 18,
            'borrowingReserveUnderlying': 500 * 10 ** 18,
        },
        USDC: _erc20('USD Coin', 'USDC', 6),
        CUSDC: _erc20('Compound USD Coin', 'cUSDC', 8),
        GCUSDC: {
            **_erc20('growth cUSDC', 'gcUSDC', 8),
            'stakesToken': DAI,
            'reserveToken': CUSDC,
            'underlyingToken': USDC,
            'totalSupply': 0,
            'balanceOf': lambda owner: 0,
            'totalReserve': 0,
            'lendingReserveUnderlying': 0,
            'borrowingReserveUnderlying': 1500000,
        },
    }


@pytest.fixture
def fake_rpc(chain_responses) -> FakeRPC:
    return FakeRPC(chain_responses)
