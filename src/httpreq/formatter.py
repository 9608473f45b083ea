"""
请求诊断格式化器模块

将一次请求及其响应渲染为文本，用于日志和调试。支持三种模式:
    - pretty ("+"): 方法、URL、请求头、响应头以及原样的请求体/响应体
    - compact ("-"): 所有信息保持在一行，换行符替换为空格
    - auto (""): 请求体或响应体包含换行时分行输出，否则单行输出
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from httpreq.constants import NEWLINE_PATTERN
from httpreq.utils import format_duration, sanitize_headers, sanitize_url


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class BaseDumpFormatter(ABC):
    """诊断格式化器基类，定义如何渲染一次请求。"""

    @abstractmethod
    def format(self, req: Req) -> str:  # noqa: F821
        """
        渲染请求及其响应

        参数:
            req: 请求包装对象

        返回:
            渲染后的文本
        """

    def headline(self, req: Req) -> str:  # noqa: F821
        """方法、URL 以及可选的耗时"""
        line = f"{req.method} {req.url}"
        if req.show_cost:
            line += f" {format_duration(req.cost)}"
        return line


class PrettyDumpFormatter(BaseDumpFormatter):
    """
    完整格式化器，输出请求头、响应头和原样的请求体/响应体

    参数:
        sensitive_headers: 需要脱敏的请求头集合，None 表示不脱敏
        sensitive_params: 需要脱敏的 URL 参数集合，None 表示不脱敏
    """

    def __init__(self, sensitive_headers: set[str] | None = None, sensitive_params: set[str] | None = None):
        self.sensitive_headers = sensitive_headers
        self.sensitive_params = sensitive_params

    def headline(self, req: Req) -> str:  # noqa: F821
        line = super().headline(req)
        if self.sensitive_params is not None:
            line = line.replace(req.url, sanitize_url(req.url, self.sensitive_params), 1)
        return line

    def _render_headers(self, headers) -> list[str]:
        if not headers:
            return []
        if self.sensitive_headers is not None:
            headers = sanitize_headers(headers, self.sensitive_headers)
        return [f"{key}: {value}" for key, value in headers.items()]

    def format(self, req: Req) -> str:  # noqa: F821
        lines = [self.headline(req)]

        request = req.prepared_request or req.request
        if request is not None:
            lines.extend(self._render_headers(request.headers))
        if req.request_body:
            lines.extend(["", _decode(req.request_body)])

        response = req.response
        if response is not None:
            lines.extend(["", f"{response.status_code} {response.reason or ''}".rstrip()])
            lines.extend(self._render_headers(response.headers))
            if req.content:
                lines.extend(["", _decode(req.content)])

        return "\n".join(lines)


class CompactDumpFormatter(BaseDumpFormatter):
    """单行格式化器，请求体和响应体中的换行符替换为空格"""

    def format(self, req: Req) -> str:  # noqa: F821
        segments = [self.headline(req)]
        for body in (req.request_body, req.content):
            if body:
                segments.append(NEWLINE_PATTERN.sub(" ", _decode(body)))
        return " ".join(segments)


class AutoDumpFormatter(BaseDumpFormatter):
    """自动格式化器，任一请求体/响应体包含换行时分行输出，否则单行输出"""

    def format(self, req: Req) -> str:  # noqa: F821
        bodies = [_decode(body) for body in (req.request_body, req.content) if body]
        separator = "\n" if any(NEWLINE_PATTERN.search(body) for body in bodies) else " "
        return separator.join([self.headline(req), *bodies])


DUMP_FORMATTERS: dict[str, BaseDumpFormatter] = {
    "+": PrettyDumpFormatter(),
    "-": CompactDumpFormatter(),
    "": AutoDumpFormatter(),
}


def get_formatter(format_spec: str) -> BaseDumpFormatter:
    """
    根据格式说明符获取格式化器

    异常:
        ValueError: 不支持的格式说明符
    """
    try:
        return DUMP_FORMATTERS[format_spec]
    except KeyError:
        raise ValueError(f"Unsupported format spec for Req: {format_spec!r}") from None
