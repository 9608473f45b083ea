"""
请求参数类型模块

定义可以作为请求参数传入的类型：
    - Header: 追加请求头（同名键追加为多值）
    - Param: 表单参数（GET 拼接到 URL，其他方法编码为请求体）
    - QueryParam: 查询参数（总是拼接到 URL）
    - Host: 覆盖 Host 请求头
    - FileUpload: 上传文件

其他可直接传入的类型见 httpreq.classifier
"""

from __future__ import annotations

import glob
import logging
import os
from typing import BinaryIO

from httpreq.exceptions import ReqValidationError

logger = logging.getLogger(__name__)


class Header(dict):
    """请求头，同名键追加而不是覆盖"""


class Param(dict):
    """表单参数"""


class QueryParam(dict):
    """查询参数，无论请求方法都拼接到 URL"""


class Host(str):
    """覆盖请求的 Host"""


class FileUpload:
    """
    待上传的文件

    参数:
        file: 二进制可读流，上传管道复制完内容后负责关闭
        file_name: multipart 表单中的文件名
        field_name: 表单字段名，为空时按未命名文件的序号使用 "file1"、"file2"...
    """

    def __init__(self, file: BinaryIO, file_name: str = "", field_name: str = ""):
        self.file = file
        self.file_name = file_name
        self.field_name = field_name

    def __repr__(self):
        return f"FileUpload(field_name={self.field_name!r}, file_name={self.file_name!r})"


def files_matching(*patterns: str) -> list[FileUpload] | ReqValidationError:
    """
    根据 glob 模式打开待上传文件

    参数:
        *patterns: glob 模式，如 "/usr/*/bin/go*"

    返回:
        FileUpload 列表（跳过目录等非普通文件）；
        没有任何匹配时返回 ReqValidationError 实例，可直接作为请求参数传入

    执行步骤:
        1. 依次展开每个模式，单个模式内的结果排序
        2. 没有任何匹配时返回错误值
        3. 跳过非普通文件，以二进制模式打开其余文件
    """
    matches: list[str] = []
    for pattern in patterns:
        matches.extend(sorted(glob.glob(pattern)))

    if not matches:
        return ReqValidationError(f"No file have been matched: {', '.join(patterns)}")

    uploads: list[FileUpload] = []
    for match in matches:
        if not os.path.isfile(match):
            logger.debug(f"Skipping non-regular file: {match}")
            continue
        try:
            file = open(match, "rb")
        except OSError as e:
            for upload in uploads:
                upload.file.close()
            error = ReqValidationError(f"Failed to open {match}: {e}")
            error.__cause__ = e
            return error
        uploads.append(FileUpload(file=file, file_name=os.path.basename(match)))

    return uploads


def close_uploads(uploads: list[FileUpload]) -> None:
    """关闭上传文件，关闭失败只记录日志"""
    for upload in uploads:
        try:
            upload.file.close()
        except OSError as e:
            logger.debug(f"Failed to close upload file {upload.file_name!r}: {e}")
