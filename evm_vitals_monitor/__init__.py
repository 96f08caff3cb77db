"""
EVM 储备健康度监控器

订阅链上区块与日志事件，解码事件参数，定期统计 gcToken 抵押率并推送到 Telegram
"""

__version__ = "0.1.0"
