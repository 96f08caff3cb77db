"""
金额换算工具

在链上最小单位（units，整数字符串）与人类可读的小数（coins，小数字符串）之间做无损转换。
全部基于字符串操作，不经过浮点数，也不做任何舍入。
"""

import re

from evm_vitals_monitor.core.errors import InvalidAmount

_UNITS_PATTERN = re.compile(r"[0-9]+")


def _check_decimals(amount, decimals) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise InvalidAmount(amount, decimals)


def is_valid_amount(amount, decimals: int) -> bool:
    """检查金额字符串是否最多带 decimals 位小数"""
    if not isinstance(amount, str):
        return False
    if decimals > 0:
        pattern = rf"[0-9]+(\.[0-9]{{1,{decimals}}})?"
    else:
        pattern = r"[0-9]+"
    return re.fullmatch(pattern, amount) is not None


def to_coins(units: str, decimals: int) -> str:
    """
    最小单位 -> 小数金额

    Args:
        units: 非负整数字符串
        decimals: 代币精度

    Returns:
        小数字符串，去掉小数部分末尾多余的 0

    Raises:
        InvalidAmount: units 不是纯数字字符串
    """
    _check_decimals(units, decimals)
    if not isinstance(units, str) or not _UNITS_PATTERN.fullmatch(units):
        raise InvalidAmount(units, decimals)
    if decimals == 0:
        return units

    padded = units.rjust(decimals + 1, "0")
    integer, fraction = padded[:-decimals], padded[-decimals:]
    fraction = fraction.rstrip("0")
    if not fraction:
        return integer
    return f"{integer}.{fraction}"


def to_units(coins: str, decimals: int) -> str:
    """
    小数金额 -> 最小单位

    小数位超过 decimals 视为格式错误，而不是截断。

    Raises:
        InvalidAmount: coins 格式不正确
    """
    _check_decimals(coins, decimals)
    if not is_valid_amount(coins, decimals):
        raise InvalidAmount(coins, decimals)

    integer, _, fraction = coins.partition(".")
    units = integer + fraction.ljust(decimals, "0")
    return units.lstrip("0") or "0"
