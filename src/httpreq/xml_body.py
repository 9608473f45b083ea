"""XML 与字典互转模块

请求体方向：单根字典序列化为 XML 字节
响应体方向：XML 字节解析为字典，便于与 JSON 响应一致地处理

转换规则:
    - 嵌套字典 -> 子元素
    - 列表 -> 同名兄弟元素
    - None -> 空元素
    - 标量 -> 文本内容
    - 属性 -> "@属性名" 键；既有子元素又有文本时文本放在 "#text" 键
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any


def dict_to_xml(data: dict[str, Any]) -> bytes:
    """
    将单根字典转换为 XML 字节（不带 XML 声明）

    参数:
        data: 只有一个顶层键的字典，顶层键为根元素名

    返回:
        UTF-8 编码的 XML 字节

    异常:
        ValueError: data 不是单根字典时抛出
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"dict_to_xml expects a dict with exactly one root key, got {type(data).__name__}")

    root_tag, root_value = next(iter(data.items()))
    return element_to_bytes(_dict_to_element(root_tag, root_value))


def element_to_bytes(element: ET.Element) -> bytes:
    """将 Element 序列化为 UTF-8 字节"""
    return ET.tostring(element, encoding="unicode").encode("utf-8")


def xml_to_dict(xml_bytes: bytes) -> dict[str, Any]:
    """
    将 XML 字节解析为字典

    命名空间前缀会被去掉，如 "{http://example.com/ns}Name" 变为 "Name"

    返回:
        以根元素名为唯一顶层键的字典

    异常:
        xml.etree.ElementTree.ParseError: XML 格式错误时抛出
    """
    root = ET.fromstring(xml_bytes)
    return {_strip_ns(root.tag): _element_to_dict(root)}


def _strip_ns(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def _element_to_dict(element: ET.Element) -> dict[str, Any] | str | None:
    result: dict[str, Any] = {}

    for attr_name, attr_value in element.attrib.items():
        if attr_name.startswith("xmlns") or attr_name.startswith("{"):
            continue
        result[f"@{attr_name}"] = attr_value

    children_by_tag: dict[str, list[Any]] = {}
    for child in element:
        children_by_tag.setdefault(_strip_ns(child.tag), []).append(_element_to_dict(child))

    for tag, values in children_by_tag.items():
        result[tag] = values if len(values) > 1 else values[0]

    text = (element.text or "").strip()
    if text:
        if not result:
            return text
        result["#text"] = text

    return result or None


def _dict_to_element(tag: str, value: Any) -> ET.Element:
    element = ET.Element(tag)

    if value is None:
        pass
    elif isinstance(value, dict):
        for key, child_value in value.items():
            if key == "#text":
                element.text = str(child_value)
            elif key.startswith("@"):
                element.set(key[1:], str(child_value))
            elif isinstance(child_value, list):
                for item in child_value:
                    element.append(_dict_to_element(key, item))
            else:
                element.append(_dict_to_element(key, child_value))
    elif isinstance(value, list):
        for item in value:
            element.append(_dict_to_element("item", item))
    else:
        element.text = str(value)

    return element
