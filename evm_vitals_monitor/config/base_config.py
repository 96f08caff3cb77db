import yaml
import os
from typing import Dict, Any, Optional

from dotenv import load_dotenv

# 先加载 .env，使环境变量在读取配置前生效
load_dotenv()


def _load_config(config_path: str = "config.yml") -> Optional[Dict[str, Any]]:
    """
    内部函数：加载并解析 YAML 配置文件。

    Args:
        config_path: 配置文件路径

    Returns:
        配置字典或 None（如果加载失败）
    """
    # 如果是相对路径，则相对于项目根目录
    if not os.path.isabs(config_path):
        current_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.dirname(current_dir)
        config_path = os.path.join(project_root, config_path)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)
        return config_data
    except FileNotFoundError:
        print(f"Warning: Config file not found at {config_path}. Using default configuration.")
        return None
    except yaml.YAMLError as exc:
        print(f"Error parsing YAML file: {exc}. Using default configuration.")
        return None


# 在模块加载时执行配置加载和解析
_loaded_config = _load_config(os.environ.get('VITALS_CONFIG', 'config.yml')) or {}

# 各网络的连接配置
NetworkMap: Dict[str, Dict[str, Any]] = _loaded_config.get('networks', {}) or {}

# 监控配置
MonitorSettings: Dict[str, Any] = _loaded_config.get('monitor', {}) or {}

# Telegram 通知配置
TelegramSettings: Dict[str, Any] = _loaded_config.get('telegram', {}) or {}


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """读取环境变量，空字符串视为未设置"""
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    return value


if __name__ == "__main__":
    print("\n--- NetworkMap ---")
    for network, config in NetworkMap.items():
        print(f"Network: {network}")
        for key, value in config.items():
            print(f"  {key}: {value}")

    print("--- MonitorSettings ---")
    for key, value in MonitorSettings.items():
        print(f"  {key}: {value}")
