"""流式请求体捕获模块

TeeReader 包装任意可读字节流：读取的数据原样返回给调用方，
同时把前 limit 个字节复制到 captured 缓冲区，用于诊断输出
"""

from __future__ import annotations

from typing import BinaryIO

from httpreq.constants import CAPTURE_LIMIT


class TeeReader:
    """
    带捕获上限的透传读取器

    参数:
        stream: 被包装的可读字节流
        limit: 捕获缓冲区上限（字节），无论流多长都不会超过

    使用示例:
        >>> tee = TeeReader(open("big.bin", "rb"))
        >>> data = tee.read()
        >>> len(tee.captured) <= CAPTURE_LIMIT
        True
    """

    def __init__(self, stream: BinaryIO, limit: int = CAPTURE_LIMIT):
        self.stream = stream
        self.limit = limit
        self._buffer = bytearray()

    @property
    def captured(self) -> bytes:
        """已捕获的前缀字节"""
        return bytes(self._buffer)

    def read(self, size: int = -1) -> bytes:
        data = self.stream.read(size)
        if isinstance(data, str):
            data = data.encode("utf-8")
        left = self.limit - len(self._buffer)
        if left > 0 and data:
            self._buffer += data[:left]
        return data

    def close(self) -> None:
        close = getattr(self.stream, "close", None)
        if callable(close):
            close()
