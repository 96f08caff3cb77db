"""
RPC调用管理器

负责 HTTP Web3 连接和合约只读调用的统计
"""

import time
from collections import defaultdict
from typing import Any, Dict, List

from web3 import AsyncWeb3

from evm_vitals_monitor.config.monitor_config import MonitorConfig
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class RPCManager:
    """RPC调用管理器 - 负责合约查询和调用统计"""

    def __init__(self, config: MonitorConfig, w3: AsyncWeb3 = None):
        self.config = config
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.http_url))

        # 统计相关
        self.rpc_calls: int = 0
        self.rpc_calls_by_type: Dict[str, int] = defaultdict(int)
        self.start_time: float = time.time()

    def log_rpc_call(self, call_type: str = 'other') -> None:
        """记录RPC调用统计"""
        self.rpc_calls += 1
        self.rpc_calls_by_type[call_type] += 1

    def contract(self, address: str, abi: List[Dict[str, Any]]):
        """创建合约对象"""
        return self.w3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi)

    async def call(self, contract, method: str, *args) -> Any:
        """调用合约的只读方法"""
        self.log_rpc_call(method)
        return await getattr(contract.functions, method)(*args).call()

    async def test_connection(self) -> Dict[str, Any]:
        """测试网络连接并返回基本信息"""
        logger.info(f"正在测试RPC {self.config.http_url} 连接...")
        try:
            latest_block = await self.w3.eth.get_block_number()
            self.log_rpc_call('get_block_number')
            return {
                'success': True,
                'latest_block': latest_block,
                'network': self.config.network,
                'rpc_url': self.config.http_url
            }
        except Exception as e:
            return {
                'success': False,
                'error': str(e),
                'rpc_url': self.config.http_url
            }

    def get_stats(self) -> Dict[str, Any]:
        """获取调用统计"""
        runtime = time.time() - self.start_time
        return {
            'rpc_calls': self.rpc_calls,
            'avg_rpc_per_second': self.rpc_calls / runtime if runtime > 0 else 0,
            'rpc_calls_by_type': dict(self.rpc_calls_by_type),
        }
