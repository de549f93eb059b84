"""
主机名与整数参数校验

只做廉价的语法检查，不做DNS解析。
"""
import re
from typing import Optional

# 等价于 ^([a-zA-Z0-9_-]{1,63}\.?)+([a-zA-Z]{2,})$ ，改写成不会灾难性回溯的形式
FQDN_PATTERN = re.compile(r'[a-zA-Z0-9_\-]+(?:\.[a-zA-Z0-9_\-]+)*\.?[a-zA-Z]{2}')

DIGITS_PATTERN = re.compile(r'[0-9]+')

IP_CHARS_PATTERN = re.compile(r'[0-9.]*[0-9]')

# 与shell的64位整数运算范围一致
MAX_DIGITS = 18


def is_ip(value: str) -> bool:
    """
    判断是否为点分十进制IPv4地址

    最后一段只接受 0-254，.255 视为无效。

    Args:
        value: 待校验字符串

    Returns:
        bool: 是否为IPv4地址
    """
    if not value or not IP_CHARS_PATTERN.fullmatch(value):
        return False

    octets = value.split('.')
    if len(octets) != 4 or not all(octets):
        return False

    limits = (255, 255, 255, 254)
    for octet, limit in zip(octets, limits):
        number = parse_digits(octet)
        if number is None or number > limit:
            return False
    return True


def is_fqdn(value: str) -> bool:
    """
    判断是否为形式上合理的域名（宽松规则，非RFC校验）

    Args:
        value: 待校验字符串

    Returns:
        bool: 是否匹配域名规则
    """
    if not value:
        return False
    return bool(FQDN_PATTERN.fullmatch(value))


def validate_hostname(value: Optional[str]) -> bool:
    """
    校验主机名：IPv4地址或域名

    Args:
        value: 主机名

    Returns:
        bool: 是否有效
    """
    if not value or not isinstance(value, str):
        return False
    return is_ip(value) or is_fqdn(value)


def validate_day_count(value: Optional[str], minimum: Optional[int] = None,
                       maximum: Optional[int] = None) -> bool:
    """
    校验非负整数字符串，可选闭区间上下限

    Args:
        value: 待校验字符串
        minimum: 最小值（含）
        maximum: 最大值（含）

    Returns:
        bool: 是否有效
    """
    if value is None or not isinstance(value, str):
        return False

    if not DIGITS_PATTERN.fullmatch(value):
        return False

    number = parse_digits(value)
    if number is None:
        return False
    if minimum is not None and number < minimum:
        return False
    if maximum is not None and number > maximum:
        return False

    return True


def parse_digits(digits: str) -> Optional[int]:
    """
    数字串转整数，忽略前导零

    Args:
        digits: 只含ASCII数字的字符串

    Returns:
        Optional[int]: 整数值，有效位数超过 MAX_DIGITS 时为None
    """
    significant = digits.lstrip('0')
    if len(significant) > MAX_DIGITS:
        return None
    return int(significant or '0')
