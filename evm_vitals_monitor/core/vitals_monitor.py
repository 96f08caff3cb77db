"""
健康度监控器

按固定间隔依次查询每个 gcToken 的借贷储备，计算抵押率并推送报告：
    collateralizationRatio = 100 * borrowing / lending（lending 为 0 时记为 0）
全部使用 Decimal 计算，不经过浮点数。
"""

import asyncio
import signal
import time
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from evm_vitals_monitor.contracts.token_handles import GCToken
from evm_vitals_monitor.models.data_types import VitalsReport
from evm_vitals_monitor.utils.log_utils import extended_seconds_to_hms, get_logger

logger = get_logger(__name__)

Number = Union[str, int, Decimal]

_TWO_PLACES = Decimal('0.01')


class Notifier(Protocol):
    async def send_message(self, text: str) -> Any: ...


def collateralization_ratio(lending: Number, borrowing: Number) -> str:
    """
    计算抵押率并格式化为两位小数的百分比

    >>> collateralization_ratio('1000', '500')
    '50.00%'
    >>> collateralization_ratio('0', '500')
    '0.00%'
    """
    lending = Decimal(str(lending))
    borrowing = Decimal(str(borrowing))
    with localcontext() as ctx:
        ctx.prec = 78
        ratio = (100 * borrowing / lending) if lending > 0 else Decimal(0)
        # quantize 需要容纳整数部分加两位小数
        ctx.prec = max(ctx.prec, ratio.adjusted() + 3)
        ratio = ratio.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    return f"{ratio}%"


class StatsSource(Protocol):
    def get_stats(self) -> Dict[str, Any]: ...


class VitalsMonitor:
    """健康度监控主循环"""

    def __init__(self, tokens: Sequence[GCToken], notifier: Notifier, interval: float = 60,
                 rpc: Optional[StatsSource] = None):
        """
        Args:
            tokens: 需要监控的 gcToken 句柄
            notifier: 报告发送者
            interval: 两次报告之间的间隔（秒）
            rpc: 可选的 RPC 管理器，每轮报告后记录其调用统计
        """
        self.tokens = list(tokens)
        self.notifier = notifier
        self.interval = interval
        self.rpc = rpc
        self.is_running = False
        self.cycles = 0
        self.start_time = time.time()
        self._task: Optional[asyncio.Task] = None
        self._stop_requested = False

    async def check_vitals(self, token: GCToken) -> VitalsReport:
        """查询单个代币的储备并计算抵押率"""
        lending = await token.lending_reserve_underlying()
        borrowing = await token.borrowing_reserve_underlying()
        return VitalsReport(
            symbol=token.symbol,
            lending=lending,
            borrowing=borrowing,
            collateralization_ratio=collateralization_ratio(lending, borrowing),
        )

    async def build_report(self) -> List[VitalsReport]:
        # 按顺序逐个查询
        reports = []
        for token in self.tokens:
            reports.append(await self.check_vitals(token))
        return reports

    async def run_once(self) -> str:
        """执行一轮：生成报告并发送，返回发送的消息"""
        reports = await self.build_report()
        message = '\n'.join(report.to_line() for report in reports)
        await self.notifier.send_message(message)
        self.cycles += 1
        logger.info(
            f"📊 第 {self.cycles} 轮报告已发送 | 运行时间 {extended_seconds_to_hms(time.time() - self.start_time)} | "
            + " | ".join(f"{r.symbol} {r.collateralization_ratio}" for r in reports)
        )
        self._log_rpc_stats()
        return message

    def _log_rpc_stats(self) -> None:
        if self.rpc is None:
            return
        stats = self.rpc.get_stats()
        by_type = ", ".join(f"{name}={count}" for name, count in sorted(stats['rpc_calls_by_type'].items()))
        logger.info(
            f"📈 RPC 调用 {stats['rpc_calls']} 次 | 平均 {stats['avg_rpc_per_second']:.2f}/s | {by_type}"
        )

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """
        主循环：报告 -> 休眠 -> 报告 ...

        Args:
            max_cycles: 最多执行的轮数，None 表示一直运行
        """
        self.is_running = True
        logger.info(f"🔄 开始健康度监控循环，间隔 {self.interval}s，监控 {len(self.tokens)} 个代币")
        try:
            while self.is_running and not self._stop_requested:
                await self.run_once()
                if max_cycles is not None and self.cycles >= max_cycles:
                    break
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            # 只有 stop() 发起的取消才算正常退出
            if not self._stop_requested:
                raise
        finally:
            self.is_running = False
        logger.info("健康度监控循环已停止")

    def start(self, max_cycles: Optional[int] = None) -> asyncio.Task:
        """以任务方式启动主循环，stop() 会取消该任务"""
        self._stop_requested = False
        self._task = asyncio.ensure_future(self.run(max_cycles))
        return self._task

    def stop(self) -> None:
        """停止监控，正在休眠或查询中的循环会被立即取消"""
        self._stop_requested = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        elif not self.is_running:
            logger.info("监控器未在运行")
            return
        self.is_running = False
        logger.info("正在停止健康度监控...")

    def get_status(self) -> Dict[str, Any]:
        return {
            'is_running': self.is_running,
            'cycles': self.cycles,
            'tokens': [token.symbol for token in self.tokens],
            'uptime': extended_seconds_to_hms(time.time() - self.start_time),
        }


def setup_signal_handlers(shutdown) -> None:
    """设置信号处理器，收到 SIGINT/SIGTERM 时调度 shutdown() 协程"""
    def signal_handler(signum, frame):
        logger.info(f"接收到信号 {signum}，开始优雅退出...")
        asyncio.ensure_future(shutdown())

    try:
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
        logger.info("信号处理器已注册")
    except Exception as e:
        logger.warning(f"注册信号处理器失败: {e}")
