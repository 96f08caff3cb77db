"""
通知服务

负责把健康度报告发送到 Telegram（异步）
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from evm_vitals_monitor.core.errors import NotificationError
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class TelegramNotifier:
    """Telegram 通知服务 - 向固定的聊天发送 HTML 格式消息"""

    def __init__(self, bot_api_key: str, chat_id: str, timeout: int = 30,
                 max_retry_attempts: int = 3, retry_delay: float = 5,
                 api_url: str = 'https://api.telegram.org',
                 session: Optional[aiohttp.ClientSession] = None):
        self.bot_api_key = bot_api_key
        self.chat_id = chat_id
        self.timeout = timeout
        self.max_retry_attempts = max_retry_attempts
        self.retry_delay = retry_delay
        self.api_url = api_url.rstrip('/')
        self._session = session

        # 统计信息
        self.total_sent = 0
        self.total_failed = 0
        self.total_retries = 0

    @property
    def send_message_url(self) -> str:
        return f"{self.api_url}/bot{self.bot_api_key}/sendMessage"

    async def _post(self, payload: Dict[str, Any]):
        if self._session is not None:
            return await self._do_post(self._session, payload)
        async with aiohttp.ClientSession() as session:
            return await self._do_post(session, payload)

    async def _do_post(self, session: aiohttp.ClientSession, payload: Dict[str, Any]):
        async with session.post(
            self.send_message_url,
            json=payload,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            return response.status, await response.text()

    async def send_message(self, text: str) -> Dict[str, Any]:
        """
        发送一条消息

        Args:
            text: 消息内容，允许 <b>/<i> 等 HTML 标记

        Returns:
            Dict[str, Any]: 发送结果

        Raises:
            NotificationError: 所有重试都失败
        """
        payload = {'chat_id': self.chat_id, 'text': text, 'parse_mode': 'HTML'}
        attempt = 0
        last_error = None

        while attempt < self.max_retry_attempts:
            attempt += 1
            try:
                status, response_text = await self._post(payload)
                if status == 200:
                    self.total_sent += 1
                    self.total_retries += attempt - 1
                    logger.debug(f"通知发送成功 (尝试 {attempt})")
                    return {'success': True, 'status_code': status, 'attempts': attempt}
                last_error = f"HTTP {status}: {response_text}"
                logger.warning(f"通知发送失败 (尝试 {attempt}): {last_error}")

            except asyncio.TimeoutError:
                last_error = f"请求超时 ({self.timeout}s)"
                logger.warning(f"通知发送超时 (尝试 {attempt})")

            except aiohttp.ClientError as e:
                last_error = f"网络错误: {e}"
                logger.warning(f"通知发送网络错误 (尝试 {attempt}): {last_error}")

            # 如果还有重试机会，等待一段时间
            if attempt < self.max_retry_attempts:
                await asyncio.sleep(self.retry_delay)

        self.total_failed += 1
        self.total_retries += attempt - 1
        logger.error(f"通知发送最终失败: {last_error}")
        raise NotificationError(f"Telegram 消息发送失败 ({attempt} 次尝试): {last_error}")

    def get_stats(self) -> Dict[str, Any]:
        """获取通知统计信息"""
        total = self.total_sent + self.total_failed
        return {
            'total_sent': self.total_sent,
            'total_failed': self.total_failed,
            'total_retries': self.total_retries,
            'success_rate': (self.total_sent / total * 100) if total > 0 else 0,
        }

    def reset_stats(self) -> None:
        """重置统计信息"""
        self.total_sent = 0
        self.total_failed = 0
        self.total_retries = 0
        logger.info("通知服务统计数据已重置")
