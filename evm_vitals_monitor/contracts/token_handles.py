"""
代币句柄

ERC20Token -> GToken -> GCToken 逐层扩展：
- ERC20Token: 名称、符号、精度、总量和余额
- GToken: 增加 stakes / reserve 代币以及储备总量
- GCToken: 增加 underlying 代币以及借贷储备
所有金额查询都返回 coins 字符串，精度取金额实际计价代币的 decimals。
"""

from typing import Any, Dict

from evm_vitals_monitor.contracts.abi import ABI_ERC20, ABI_GCTOKEN, ABI_GTOKEN
from evm_vitals_monitor.managers.rpc_manager import RPCManager
from evm_vitals_monitor.utils.amount import to_coins
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class ERC20Token:
    """ERC20 代币句柄"""

    abi = ABI_ERC20

    def __init__(self, rpc: RPCManager, address: str, name: str, symbol: str, decimals: int):
        self.rpc = rpc
        self.address = address
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.contract = rpc.contract(address, self.abi)

    @classmethod
    async def _load_fields(cls, rpc: RPCManager, address: str) -> Dict[str, Any]:
        contract = rpc.contract(address, cls.abi)
        name = await rpc.call(contract, 'name')
        symbol = await rpc.call(contract, 'symbol')
        decimals = int(await rpc.call(contract, 'decimals'))
        return {'address': address, 'name': name, 'symbol': symbol, 'decimals': decimals}

    @classmethod
    async def load(cls, rpc: RPCManager, address: str) -> 'ERC20Token':
        """从链上读取代币元数据并创建句柄"""
        fields = await cls._load_fields(rpc, address)
        token = cls(rpc, **fields)
        logger.debug(f"🪙 已加载代币 {token}")
        return token

    async def _amount(self, method: str, decimals: int, *args) -> str:
        amount = await self.rpc.call(self.contract, method, *args)
        return to_coins(str(amount), decimals)

    async def total_supply(self) -> str:
        return await self._amount('totalSupply', self.decimals)

    async def balance_of(self, owner: str) -> str:
        return await self._amount('balanceOf', self.decimals, owner)

    def __str__(self) -> str:
        return f"{self.symbol}({self.address}, decimals={self.decimals})"


class GToken(ERC20Token):
    """带储备的 gToken 句柄"""

    abi = ABI_GTOKEN

    def __init__(self, rpc: RPCManager, address: str, name: str, symbol: str, decimals: int,
                 stakes_token: ERC20Token, reserve_token: ERC20Token):
        super().__init__(rpc, address, name, symbol, decimals)
        self.stakes_token = stakes_token
        self.reserve_token = reserve_token

    @classmethod
    async def _load_fields(cls, rpc: RPCManager, address: str) -> Dict[str, Any]:
        fields = await super()._load_fields(rpc, address)
        contract = rpc.contract(address, cls.abi)
        fields['stakes_token'] = await ERC20Token.load(rpc, await rpc.call(contract, 'stakesToken'))
        fields['reserve_token'] = await ERC20Token.load(rpc, await rpc.call(contract, 'reserveToken'))
        return fields

    async def total_reserve(self) -> str:
        return await self._amount('totalReserve', self.reserve_token.decimals)


class GCToken(GToken):
    """基于借贷市场的 gcToken 句柄"""

    abi = ABI_GCTOKEN

    def __init__(self, rpc: RPCManager, address: str, name: str, symbol: str, decimals: int,
                 stakes_token: ERC20Token, reserve_token: ERC20Token, underlying_token: ERC20Token):
        super().__init__(rpc, address, name, symbol, decimals, stakes_token, reserve_token)
        self.underlying_token = underlying_token

    @classmethod
    async def _load_fields(cls, rpc: RPCManager, address: str) -> Dict[str, Any]:
        fields = await super()._load_fields(rpc, address)
        contract = rpc.contract(address, cls.abi)
        fields['underlying_token'] = await ERC20Token.load(rpc, await rpc.call(contract, 'underlyingToken'))
        return fields

    async def lending_reserve_underlying(self) -> str:
        return await self._amount('lendingReserveUnderlying', self.underlying_token.decimals)

    async def borrowing_reserve_underlying(self) -> str:
        return await self._amount('borrowingReserveUnderlying', self.underlying_token.decimals)
