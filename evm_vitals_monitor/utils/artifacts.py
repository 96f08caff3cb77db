"""
合约地址加载工具

从 Truffle 构建产物（build/contracts/<Name>.json）中读取合约在指定网络上的部署地址
"""

import json
import os
from typing import Any, Dict, List

from evm_vitals_monitor.core.errors import ConfigurationError
from evm_vitals_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


def load_deployed_address(build_dir: str, contract_name: str, network_id: str) -> str:
    """
    读取合约部署地址

    Args:
        build_dir: 构建产物目录
        contract_name: 合约名称，例如 gcDAI
        network_id: 网络 id，例如 '1'

    Raises:
        ConfigurationError: 构建产物不存在或没有该网络的部署记录
    """
    path = os.path.join(build_dir, f"{contract_name}.json")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            artifact = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"找不到合约构建产物: {path}") from None
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"合约构建产物格式错误 {path}: {e}") from e

    deployment = (artifact.get('networks') or {}).get(str(network_id))
    if not deployment or not deployment.get('address'):
        raise ConfigurationError(f"{contract_name} 在网络 {network_id} 上没有部署记录")
    return deployment['address']


def resolve_token_addresses(tokens: List[Dict[str, Any]], build_dir: str, network_id: str) -> List[str]:
    """按配置顺序返回代币地址，未显式配置地址的从构建产物读取"""
    addresses = []
    for token in tokens:
        address = token.get('address')
        if not address:
            address = load_deployed_address(build_dir, token['name'], network_id)
            logger.info(f"📦 {token['name']} 地址来自构建产物: {address}")
        addresses.append(address)
    return addresses
