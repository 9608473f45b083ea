"""
通用测试 Fixture 定义

提供测试所需的客户端、临时文件和工具函数
"""

import io

import pytest


@pytest.fixture
def client():
    """默认配置的 Client 实例，测试结束后关闭"""
    from httpreq import Client

    with Client() as instance:
        yield instance


@pytest.fixture
def reset_default_client():
    """测试前后重置进程默认客户端"""
    from httpreq import set_default_client

    set_default_client(None)
    yield
    set_default_client(None)


@pytest.fixture
def upload_dir(tmp_path):
    """包含两个文本文件和一个子目录的临时目录"""
    (tmp_path / "a.txt").write_bytes(b"content of a")
    (tmp_path / "b.txt").write_bytes(b"content of b")
    (tmp_path / "sub.txt").mkdir()
    return tmp_path


class TrackingStream(io.BytesIO):
    """记录 close 调用次数的字节流"""

    def __init__(self, data: bytes = b""):
        super().__init__(data)
        self.close_calls = 0

    def close(self):
        self.close_calls += 1
        super().close()


class FailingStream(io.RawIOBase):
    """读取时抛出 OSError 的流"""

    def __init__(self):
        self.close_calls = 0

    def readable(self):
        return True

    def read(self, size=-1):
        raise OSError("disk read failed")

    def close(self):
        self.close_calls += 1
        super().close()


@pytest.fixture
def tracking_stream():
    """返回 TrackingStream 构造函数"""
    return TrackingStream


@pytest.fixture
def failing_stream():
    """返回一个读取时失败的流"""
    return FailingStream()


def read_body(request) -> bytes:
    """读取 responses 回调中的请求体（兼容已读取和未读取的流）"""
    body = request.body
    if hasattr(body, "read"):
        body = body.read()
    if isinstance(body, str):
        body = body.encode("utf-8")
    return body or b""


@pytest.fixture
def body_reader():
    """返回读取请求体的函数"""
    return read_body
