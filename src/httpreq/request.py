"""
请求包装模块

Req 保存一次请求的完整信息：组装后的请求、发送时的 PreparedRequest、
响应对象、缓冲的响应体、诊断用请求体以及请求耗时。
请求执行后对调用方只读。

格式化:
    >>> f"{req}"     # auto：根据请求体/响应体是否包含换行自动选择
    >>> f"{req:+}"   # pretty：包含请求头和响应头
    >>> f"{req:-}"   # compact：所有信息保持在一行
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import requests

from httpreq.multipart import MultipartUpload


class Req:
    """
    请求及其响应

    参数:
        method: HTTP 方法（会转换为大写）
        url: 请求 URL（组装完成后包含查询字符串）
    """

    def __init__(self, method: str, url: str):
        self.request_id = self.generate_request_id()
        self._method = method.upper()
        self._url = url
        self._request: requests.Request | None = None
        self._prepared: requests.PreparedRequest | None = None
        self._response: requests.Response | None = None
        self._session: requests.Session | None = None
        self._upload: MultipartUpload | None = None
        self._request_body: bytes | None = None
        self._response_body: bytes | None = None
        self._cost: float = 0.0
        self._show_cost: bool = False

    @staticmethod
    def generate_request_id() -> str:
        """生成全局唯一的请求 ID，用于日志追踪"""
        timestamp = int(time.time() * 1000)
        short_uuid = uuid.uuid4().hex[:8]
        return f"REQ-{timestamp}-{short_uuid}"

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    @property
    def request(self) -> requests.Request | None:
        """组装后的请求对象"""
        return self._request

    @property
    def prepared_request(self) -> requests.PreparedRequest | None:
        """发送给传输层的请求对象，发送前为 None"""
        return self._prepared

    @property
    def response(self) -> requests.Response | None:
        """响应对象，传输失败时为 None"""
        return self._response

    @property
    def session(self) -> requests.Session | None:
        """执行请求使用的传输层"""
        return self._session

    @property
    def request_body(self) -> bytes:
        """诊断用请求体；流式来源为受限前缀，multipart 来源为脱敏副本"""
        return self._request_body or b""

    @property
    def cost(self) -> float:
        """请求耗时（秒）"""
        return self._cost

    @property
    def show_cost(self) -> bool:
        """格式化输出时是否显示耗时"""
        return self._show_cost

    @property
    def is_buffered(self) -> bool:
        """响应体是否已经缓冲"""
        return self._response_body is not None

    @property
    def content(self) -> bytes:
        """缓冲的响应体；非文本类响应未缓冲时为空"""
        return self._response_body or b""

    @property
    def text(self) -> str:
        """缓冲的响应体字符串"""
        return self.content.decode("utf-8", errors="replace")

    def to_json(self) -> Any:
        """将 JSON 响应体解析为 Python 对象"""
        from httpreq.parser import JSONResponseParser

        return JSONResponseParser().parse(self)

    def to_xml(self) -> dict[str, Any]:
        """将 XML 响应体解析为字典"""
        from httpreq.parser import XMLResponseParser

        return XMLResponseParser().parse(self)

    def to_file(self, path: str) -> str:
        """将响应体下载到文件，返回文件路径"""
        from httpreq.parser import FileWriteResponseParser

        return FileWriteResponseParser(path).parse(self)

    def __format__(self, format_spec: str) -> str:
        from httpreq.formatter import get_formatter

        return get_formatter(format_spec).format(self)

    def __str__(self) -> str:
        return format(self, "")

    def __repr__(self) -> str:
        status = self._response.status_code if self._response is not None else None
        return f"<Req {self._method} {self._url} [{status}]>"
