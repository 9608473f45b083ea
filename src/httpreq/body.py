"""
请求体模块

Body 是已物化的请求体（内容类型 + 字节），由字面量或编码适配器生成。
编码失败时适配器返回 ReqSerializationError 实例而不是抛出，
调用方可以把返回值直接作为请求参数传入，由分类器统一抛出。

使用示例:
    >>> import httpreq
    >>> req = httpreq.post("https://api.example.com/users", httpreq.as_json_body({"name": "john"}))
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any

from httpreq.constants import CONTENT_TYPE_JSON, CONTENT_TYPE_XML
from httpreq.exceptions import ReqSerializationError
from httpreq.xml_body import dict_to_xml, element_to_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Body:
    """
    已物化的请求体

    属性:
        data: 请求体字节
        content_type: 内容类型提示，None 表示不设置 Content-Type
    """

    data: bytes
    content_type: str | None = None


def _literal_bytes(value: Any) -> bytes | None:
    """str/bytes 字面量直接转为字节，其他类型返回 None"""
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return None


def as_json_body(value: Any) -> Body | ReqSerializationError:
    """
    生成 JSON 请求体

    参数:
        value: str/bytes 原样使用；其他值使用 json 序列化

    返回:
        Body 实例；序列化失败时返回 ReqSerializationError 实例
    """
    data = _literal_bytes(value)
    if data is None:
        try:
            data = json.dumps(value).encode("utf-8")
        except (TypeError, ValueError) as e:
            logger.debug(f"JSON serialization failed: {e}")
            error = ReqSerializationError(f"Failed to encode JSON body: {e}")
            error.__cause__ = e
            return error
    return Body(data=data, content_type=CONTENT_TYPE_JSON)


def as_xml_body(value: Any) -> Body | ReqSerializationError:
    """
    生成 XML 请求体

    参数:
        value: str/bytes 原样使用；ElementTree.Element 或单根字典会被序列化

    返回:
        Body 实例；无法序列化时返回 ReqSerializationError 实例
    """
    data = _literal_bytes(value)
    if data is None:
        try:
            if isinstance(value, ET.Element):
                data = element_to_bytes(value)
            else:
                data = dict_to_xml(value)
        except (TypeError, ValueError) as e:
            logger.debug(f"XML serialization failed: {e}")
            error = ReqSerializationError(f"Failed to encode XML body: {e}")
            error.__cause__ = e
            return error
    return Body(data=data, content_type=CONTENT_TYPE_XML)
