"""工具函数模块

提供查询字符串拼接、耗时格式化、日志脱敏等实用功能
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


# 默认敏感请求头名称集合
DEFAULT_SENSITIVE_HEADERS = {
    "Authorization",
    "Proxy-Authorization",
    "Cookie",
    "Set-Cookie",
    "X-API-Key",
    "X-Auth-Token",
    "X-Access-Token",
}

# 默认敏感URL参数名称集合
DEFAULT_SENSITIVE_PARAMS = {
    "token",
    "password",
    "secret",
    "key",
    "api_key",
    "apikey",
    "access_token",
    "auth_token",
    "pwd",
}


def encode_params(mappings: Iterable[Mapping]) -> str:
    """
    将多个参数映射编码为 URL 查询字符串

    多个映射按出现顺序合并，重复键全部保留（多值编码）。
    编码前按键稳定排序，同名键保持出现顺序。

    参数:
        mappings: 参数映射列表

    返回:
        编码后的查询字符串

    示例:
        >>> encode_params([{"b": "2"}, {"a": "1", "b": "3"}])
        'a=1&b=2&b=3'
    """
    pairs = [(str(key), str(value)) for mapping in mappings for key, value in mapping.items()]
    pairs.sort(key=lambda pair: pair[0])
    return urlencode(pairs)


def append_query(url: str, query: str) -> str:
    """
    将查询字符串追加到 URL

    URL 中已有查询部分时使用 "&" 连接，否则使用 "?"
    """
    if not query:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


def format_duration(seconds: float) -> str:
    """
    将耗时格式化为可读字符串

    示例:
        >>> format_duration(0.0125)
        '12.5ms'
        >>> format_duration(1.5)
        '1.5s'
    """
    if seconds >= 1:
        value, unit = seconds, "s"
    elif seconds >= 1e-3:
        value, unit = seconds * 1e3, "ms"
    elif seconds >= 1e-6:
        value, unit = seconds * 1e6, "µs"
    else:
        value, unit = seconds * 1e9, "ns"
    return f"{value:.3f}".rstrip("0").rstrip(".") + unit


def sanitize_headers(
    headers: Mapping[str, str],
    sensitive_keys: set[str] | None = None,
    mask: str = "***",
) -> dict[str, str]:
    """
    脱敏请求头中的敏感信息

    参数:
        headers: 原始请求头（dict 或 CaseInsensitiveDict）
        sensitive_keys: 敏感键名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的请求头字典（新字典，不修改原对象）

    示例:
        >>> sanitize_headers({"Authorization": "Bearer token123", "Accept": "*/*"})
        {'Authorization': '***', 'Accept': '*/*'}
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_HEADERS

    sensitive_keys_lower = {k.lower() for k in sensitive_keys}
    return {k: mask if k.lower() in sensitive_keys_lower else v for k, v in headers.items()}


def sanitize_url(
    url: str,
    sensitive_params: set[str] | None = None,
    mask: str = "***",
) -> str:
    """
    脱敏 URL 中的敏感参数

    参数:
        url: 原始 URL
        sensitive_params: 敏感参数名集合，不区分大小写。None 时使用默认集合
        mask: 脱敏后的替换字符串

    返回:
        脱敏后的 URL，参数顺序和重复键保持不变

    示例:
        >>> sanitize_url("https://api.example.com/user?token=abc123&page=1")
        'https://api.example.com/user?token=%2A%2A%2A&page=1'
    """
    if sensitive_params is None:
        sensitive_params = DEFAULT_SENSITIVE_PARAMS

    parsed = urlparse(url)
    if not parsed.query:
        return url

    sensitive_params_lower = {p.lower() for p in sensitive_params}
    pairs = [
        (key, mask if key.lower() in sensitive_params_lower else value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
    ]
    return urlunparse(parsed._replace(query=urlencode(pairs)))
