#!/usr/bin/env python3
"""
EVM 储备健康度监控器

程序入口点：加载配置、创建代币句柄和节点连接，启动健康度报告循环
"""

import asyncio
import sys
from typing import Optional

from evm_vitals_monitor.config.monitor_config import MonitorConfig
from evm_vitals_monitor.contracts.token_handles import GCToken
from evm_vitals_monitor.core.error_policy import get_error_policy
from evm_vitals_monitor.core.errors import TransportError
from evm_vitals_monitor.core.startup_logger import StartupLogger
from evm_vitals_monitor.core.vitals_monitor import VitalsMonitor, setup_signal_handlers
from evm_vitals_monitor.managers.connection_manager import ConnectionSupervisor, Web3SocketTransport
from evm_vitals_monitor.managers.rpc_manager import RPCManager
from evm_vitals_monitor.managers.subscription_manager import SubscriptionManager
from evm_vitals_monitor.services.notification_service import TelegramNotifier
from evm_vitals_monitor.utils.artifacts import resolve_token_addresses
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


def log_block(block_number: int) -> None:
    logger.info(f"🧱 新区块 #{block_number}")


async def main(network: Optional[str] = None) -> int:
    """主函数 - 启动健康度监控器"""
    supervisor = None
    try:
        # 创建并校验配置
        config = MonitorConfig.from_network(network)
        config.validate()
        error_policy = get_error_policy(config.error_policy)

        # 加载代币句柄
        rpc = RPCManager(config)
        status = await rpc.test_connection()
        if not status['success']:
            raise TransportError(f"RPC 连接失败 ({status['rpc_url']}): {status['error']}")
        logger.info(f"✅ RPC 连接成功，最新区块 #{status['latest_block']}")

        addresses = resolve_token_addresses(config.tokens, config.build_dir, config.network_id)
        tokens = [await GCToken.load(rpc, address) for address in addresses]
        StartupLogger(config).log_startup_info(tokens)

        notifier = TelegramNotifier(
            config.telegram_bot_api_key,
            config.telegram_bot_chat_id,
            timeout=config.notify_timeout,
            max_retry_attempts=config.notify_max_retry_attempts,
            retry_delay=config.notify_retry_delay,
            api_url=config.telegram_api_url,
        )
        monitor = VitalsMonitor(tokens, notifier, config.report_interval, rpc=rpc)
        tasks = [monitor.start()]

        if config.log_blocks:
            supervisor = ConnectionSupervisor(lambda: Web3SocketTransport(config.ws_url), error_policy)
            subscriptions = SubscriptionManager(supervisor)
            await subscriptions.subscribe_blocks(log_block)
            tasks.append(supervisor.run())

        async def shutdown():
            monitor.stop()
            if supervisor is not None:
                await supervisor.stop()

        # 设置信号处理器
        setup_signal_handlers(shutdown)

        await asyncio.gather(*tasks)
        logger.info(f"监控已停止: {monitor.get_status()}")

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("接收到中断，监控已停止")
    except Exception as e:
        logger.error(f"监控器运行失败: {e}", exc_info=True)
        return 1
    finally:
        if supervisor is not None and supervisor.transport is not None:
            await supervisor.stop()

    return 0


def run() -> None:
    """命令行入口：evm-vitals-monitor [network]"""
    network = sys.argv[1] if len(sys.argv) > 1 else None
    sys.exit(asyncio.run(main(network)))


if __name__ == '__main__':
    run()
