"""
响应解析器模块

提供 JSON、XML 解析以及文件下载，作用于执行完成的 Req 对象。
文本类响应在执行时已经缓冲，直接解析缓冲的字节；
非文本类响应未被读取，下载时以流式方式写入文件，不会在内存中保留完整内容。
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any

from httpreq.constants import DEFAULT_CHUNK_SIZE, TEXT_CONTENT_TYPE_PATTERN
from httpreq.xml_body import xml_to_dict

logger = logging.getLogger(__name__)


def is_textual_content_type(content_type: str | None) -> bool:
    """Content-Type 为空或属于 xml/json/text 时返回 True，此类响应会被立即缓冲"""
    return not content_type or TEXT_CONTENT_TYPE_PATTERN.search(content_type) is not None


class BaseResponseParser(ABC):
    """响应解析器基类，定义解析 Req 的接口。"""

    @abstractmethod
    def parse(self, req: Req) -> Any:  # noqa: F821
        """解析 Req 的响应并返回所需格式的数据。"""


class JSONResponseParser(BaseResponseParser):
    """解析缓冲的响应体为 JSON 数据"""

    def parse(self, req: Req) -> Any:  # noqa: F821
        logger.debug(f"[{req.request_id}] Parsing response as JSON")
        return json.loads(req.content)


class XMLResponseParser(BaseResponseParser):
    """解析缓冲的响应体为字典"""

    def parse(self, req: Req) -> dict[str, Any]:  # noqa: F821
        logger.debug(f"[{req.request_id}] Parsing response as XML")
        return xml_to_dict(req.content)


class FileWriteResponseParser(BaseResponseParser):
    """
    文件写入响应解析器

    参数:
        path: 目标文件路径，所在目录不存在时自动创建
        chunk_size: 分块读取大小（字节）
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __init__(self, path: str, chunk_size: int | None = None):
        self.path = path
        self.chunk_size = chunk_size or self.chunk_size

    def parse(self, req: Req) -> str:  # noqa: F821
        if req.response is None:
            raise ValueError("request has no response to write")

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        logger.debug(f"[{req.request_id}] Writing response content to file: {self.path}")
        with open(self.path, "wb") as f:
            if req.is_buffered:
                f.write(req.content)
            else:
                for chunk in req.response.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        f.write(chunk)
        return self.path
